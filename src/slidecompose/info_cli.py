"""CLI for static information: available section types and a sample manifest.

Usage:
    slidecompose types
    slidecompose example > video.yaml
"""

import argparse

import yaml

from .templates import list_section_types


EXAMPLE_VIDEO = {
    "title": "Sample Video",
    "video": {"resolution": [1920, 1080]},
    "sections": [
        {
            "type": "title",
            "title": "Amazing AI Breakthrough",
            "subtitle": "Revolutionary Technology",
            "duration": 5,
        },
        {
            "type": "problem_statement",
            "title": "Current Challenges",
            "points": [
                "Slow processing speed",
                "High operational costs",
                "Limited accuracy",
            ],
            "description": "Today's AI systems face significant limitations",
            "duration": 10,
        },
        {
            "type": "solution",
            "title": "Our Innovation",
            "content": "Introducing next-generation AI that solves these problems",
            "features": ["10x faster processing", "90% cost reduction", "99% accuracy"],
            "duration": 10,
        },
        {
            "type": "results",
            "title": "Impressive Results",
            "results": [
                {"metric": "Speed Improvement", "value": "10x faster", "icon": "🚀"},
                {"metric": "Cost Reduction", "value": "90%", "icon": "💰"},
                {"metric": "Accuracy", "value": "99%", "icon": "🎯"},
            ],
            "duration": 8,
        },
        {
            "type": "conclusion",
            "title": "The Future is Here",
            "content": "Join us in revolutionizing AI technology for everyone",
            "callToAction": "Get Started Today",
            "duration": 5,
        },
    ],
}


def print_types() -> None:
    types = list_section_types()
    width = max(len(name) for name in types)
    print("Available section types:")
    for name, description in types.items():
        print(f"  {name:<{width}}  {description}")


def print_example() -> None:
    print(yaml.safe_dump(EXAMPLE_VIDEO, sort_keys=False, allow_unicode=True), end="")


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Show section types or a sample manifest.",
    )
    parser.add_argument("topic", choices=["types", "example"])
    parsed = parser.parse_args(args)

    if parsed.topic == "types":
        print_types()
    else:
        print_example()


if __name__ == "__main__":
    main()
