"""Interactive blog outline assistant."""

import asyncio
import sys
from pathlib import Path

# Add the parent directory to the path so we can import from genai_studio
sys.path.insert(0, str(Path(__file__).parent.parent))

from genai_studio.services.outline import OutlineAssistant, select_mode


def print_token(token: str) -> None:
    print(token, end="", flush=True)


async def ask(prompt: str) -> str:
    return (await asyncio.to_thread(input, prompt)).strip()


async def new_topic(assistant: OutlineAssistant) -> bool:
    topic = await ask("What topic would you like to write about? ")
    if not topic:
        print("No topic provided. Exiting...")
        return False

    print("\nGenerating blog post outline...\n")
    await assistant.generate_outline(topic)
    print("\n\nSummary:\n")
    await assistant.summarize()
    print("\n")
    print("-" * 50)
    print("You can now ask follow-up questions about this topic.")
    print("   Type 'exit' to quit, or 'new' for a new topic.\n")
    return True


async def main():
    print("=" * 46)
    print("   Smart Content Assistant")
    print("   Your AI-Powered Blog Outline Creator")
    print("=" * 46 + "\n")

    print("Content Mode:")
    print("   [1] Creative (imaginative, varied output)")
    print("   [2] Balanced (default)")
    print("   [3] Factual (precise, focused output)\n")
    mode = select_mode(await ask("Select mode (1-3): "))
    print(f"{mode.name.capitalize()} mode selected (temperature: {mode.temperature})\n")

    assistant = OutlineAssistant(mode=mode, on_token=print_token)
    if not await new_topic(assistant):
        return

    while True:
        question = await ask("You: ")
        if not question:
            continue
        command = question.lower()
        if command == "exit":
            print("Goodbye!")
            return
        if command == "new":
            if not await new_topic(assistant):
                return
            continue

        print("\nResponse:\n")
        await assistant.answer_follow_up(question)
        print("\n")
        print("-" * 50)
        print("Ask follow-up questions or type 'exit' to quit.\n")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, EOFError):
        print("\nGoodbye!")
