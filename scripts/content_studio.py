"""Produce a content suite for one topic, or several with --batch.

Usage:
    python scripts/content_studio.py "Topic"
    python scripts/content_studio.py --batch "Topic one" "Topic two"
"""

import asyncio
import json
import sys
from pathlib import Path

# Add the parent directory to the path so we can import from genai_studio
sys.path.insert(0, str(Path(__file__).parent.parent))

from genai_studio.services.content_studio import ContentStudio

DEFAULT_TOPIC = "The Future of Artificial General Intelligence"


async def main(args):
    studio = ContentStudio()

    if args and args[0] == "--batch":
        topics = args[1:]
        print(f"Starting batch processing for {len(topics)} topics...")
        for report in await studio.run_batch(topics):
            print(json.dumps(report, indent=2))
        print("\nBatch processing complete!")
        return

    topic = args[0] if args else DEFAULT_TOPIC
    report = await studio.run(topic)
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
