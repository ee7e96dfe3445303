#!/usr/bin/env python
"""
Generate a sample background without touching Zoom.

Usage:
    python scripts/generate_sample.py [--output FILE] [--prompt TEXT] [--service NAME]
"""

import argparse
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from zoombg import ZoombgError
from zoombg.core.config import Config, ConfigStore
from zoombg.core.providers import build_registry
from zoombg.core.resolver import resolve_service
from zoombg.core.retry import RetryPolicy


def main() -> None:
    """Generate a sample image and write it to --output."""
    parser = argparse.ArgumentParser(description="Generate a sample background image")
    parser.add_argument(
        "--output",
        default="sample_background.png",
        help="Output filename (default: sample_background.png)",
    )
    parser.add_argument(
        "--prompt",
        default="a calm minimalist home office with plants and soft morning light",
        help="Prompt for generation",
    )
    parser.add_argument("--service", default=None, help="Service (default: last used)")

    args = parser.parse_args()

    print(f"Generating image with prompt: {args.prompt}")
    print()

    config = Config.from_env()
    config.validate()

    try:
        store = ConfigStore(config.config_path)
        resolved = resolve_service(args.service, store, build_registry(config))
        policy = RetryPolicy.from_config(config)
        result = policy.run(resolved.adapter, args.prompt, resolved.api_key)
    except ZoombgError as e:
        print(f"❌ Generation failed: {e}")
        if e.remedy:
            print(f"   {e.remedy}")
        sys.exit(1)

    Path(args.output).write_bytes(result.image_bytes)

    print("✓ Image generated successfully!")
    print(f"  - Saved to: {args.output}")
    print(f"  - Generation time: {result.generation_time:.2f}s")
    print(f"  - Service: {result.service_name}")
    print(f"  - Size: {result.size[0]}x{result.size[1]}")


if __name__ == "__main__":
    main()
