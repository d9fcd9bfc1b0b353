"""
Example: Storing and searching agent memories

Demonstrates:
1. Writing typed memories through MemoryService
2. Configuring search from the environment (AGENT_MEMORY_* variables)
3. Syncing the index and running a hybrid search
4. Inspecting index status

Install optional embedding backends:
    pip install agent-memory[embeddings-transformers]  # local models
    pip install agent-memory[embeddings-openai]        # OpenAI-compatible APIs
"""

import asyncio
import logging
import sys
import tempfile

from agent_memory import MemorySearchSettings, MemoryService
from agent_memory.models import now_ms


async def main(workspace: str):
    # Reads AGENT_MEMORY_PROVIDER, AGENT_MEMORY_QUERY__MAX_RESULTS, ...
    config = MemorySearchSettings().to_config()
    service = MemoryService(workspace, agent_id="demo", search_config=config)

    service.insert("semantic", "User prefers dark mode", category="preferences")
    service.insert("semantic", "User lives in Berlin", category="location")
    service.insert("episodic", "Deployed the billing service on Friday")
    service.insert(
        "prospective", "Remind the user about the dentist", triggerTime=now_ms() + 3_600_000
    )

    report = await service.sync(reason="example", force=True)
    if report is not None:
        print(f"Indexed {report.files_indexed} files, {report.chunks_written} chunks")
        if report.degraded:
            print(f"Degraded: {[reason.value for reason in report.degraded]}")

    for query in ["dark mode", "where does the user live", "billing deploy"]:
        print(f"\n=== {query} ===")
        for result in await service.search(query, max_results=3):
            print(f"{result.score:.3f} {result.path}#{result.start_line} {result.snippet}")

    print("\nRecent memories:")
    for content in service.get_memories(kinds=["semantic", "episodic"], limit=5, format="content"):
        print(f"- {content}")

    await service.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    target = sys.argv[1] if len(sys.argv) > 1 else tempfile.mkdtemp(prefix="agent-memory-")
    asyncio.run(main(target))
