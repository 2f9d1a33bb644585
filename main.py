import asyncio

from triad.config import get_settings
from triad.core.pipeline import EventKind, ModelSelection, Orchestrator
from triad.utils.logging import run_context, setup_logging


def render(event) -> str:
    data = event.to_dict()
    kind = event.kind
    if kind is EventKind.PLAN_PRODUCED:
        return f"[plan] search: {data['searchTerm']} | format: {data['responseFormat']}"
    if kind is EventKind.DELEGATE:
        return f"[delegate -> {data['to']}] {data['instructions'][:100]}"
    if kind is EventKind.RESEARCH_THINKING:
        return f"[researcher] {data['text']}"
    if kind is EventKind.RESEARCH_TOOL_CALL:
        return f"[tool] {data['tool']}({data['input']})"
    if kind is EventKind.RESEARCH_TOOL_RESULT:
        return f"[tool result] {data['preview']}"
    if kind is EventKind.SYNTHESIS_DONE:
        return "\n" + "=" * 42 + "\n\n" + data["answer"] + "\n\n" + "=" * 42
    if kind is EventKind.ERROR:
        return f"ERROR: {data['message']}"
    return f"[{event.type}] {data.get('message', '')}".rstrip()


async def main():
    setup_logging(level="WARNING")
    settings = get_settings()

    print("==========================================")
    print("  Triad: planner / researcher / synthesizer")
    print("==========================================")

    question = input("\nEnter your question: ").strip()
    if not question:
        print("Empty question. Exiting.")
        return

    selection = ModelSelection.from_settings(settings)
    print(
        f"\nModels: planner={selection.planner}, researcher={selection.researcher}, "
        f"synthesizer={selection.synthesizer}\n"
    )

    orchestrator = Orchestrator(settings=settings)
    try:
        with run_context(question=question):
            async for event in orchestrator.stream(question, selection):
                print(render(event))
    finally:
        await orchestrator.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
