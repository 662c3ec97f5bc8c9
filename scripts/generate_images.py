"""Generate a themed image batch (square, landscape, portrait)."""

import asyncio
import sys
from pathlib import Path

# Add the parent directory to the path so we can import from genai_studio
sys.path.insert(0, str(Path(__file__).parent.parent))

from genai_studio.services.image_generation import run_image_batch


async def main():
    print("Welcome to the Smart Image Generator!")
    theme = " ".join(sys.argv[1:]).strip()
    if not theme:
        theme = (await asyncio.to_thread(input, "Enter a theme for your images: ")).strip()
    if not theme:
        print("Please enter a theme.")
        return

    batch = await run_image_batch(theme)

    succeeded = sum(1 for entry in batch.results if entry.success)
    print("\nGeneration Complete!")
    print(f"Images generated: {succeeded}/{len(batch.results)}")
    print(f"Total Estimated Cost: ${batch.total_cost:.4f}")
    print(f"Metadata saved to: {batch.output_dir / 'metadata.json'}")


if __name__ == "__main__":
    asyncio.run(main())
