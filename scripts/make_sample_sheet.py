#!/usr/bin/env python
from __future__ import annotations

import argparse
import csv
from pathlib import Path


HEADER = [
    "Name",
    "Brief",
    "Niche",
    "Style",
    "Colors",
    "Audience",
    "Keywords",
    "Title",
    "Bullet 1",
    "Bullet 2",
    "Notes",
    "Custom Prompt",
    "Owner",
    "Status",
    "Link",
    "Reference 1",
    "Reference 2",
    "Reference 3",
    "Reference 4",
    "Reference 5",
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a job sheet CSV with the 20-column layout")
    parser.add_argument("--output", required=True, help="Output path (.csv)")
    parser.add_argument("--name", default="Retro Sunset Cat", help="Job name")
    parser.add_argument("--prompt", default="", help="Custom prompt (column L)")
    parser.add_argument("--reference", action="append", default=[], help="Reference image URL, up to five")
    args = parser.parse_args()

    if len(args.reference) > 5:
        parser.error("at most five reference URLs are supported")

    references = args.reference + [""] * (5 - len(args.reference))
    row = [""] * len(HEADER)
    row[0] = args.name
    row[1] = "Redesign for a t-shirt print"
    row[11] = args.prompt
    row[15:20] = references

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open("w", newline="", encoding="utf-8") as fp:
        writer = csv.writer(fp)
        writer.writerow(HEADER)
        writer.writerow(row)

    print(f"Job sheet written: {output}")


if __name__ == "__main__":
    main()
