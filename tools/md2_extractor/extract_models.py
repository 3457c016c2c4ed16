#!/usr/bin/env python3
"""Extract Quake II MD2 models to glTF format.

Usage:
    python extract_models.py <input> [-o <output>] [--frame N] [--all-frames] [--apply-translate]

Examples:
    # Extract the first frame of a single file
    python extract_models.py tris.md2 -o ./output

    # Extract all MD2 files from a directory
    python extract_models.py ./models/ -o ./output

    # Extract every animation frame, positioned with the frame translate
    python extract_models.py tris.md2 -o ./output --all-frames --apply-translate
"""
import argparse
import logging
import os
import re
import sys
from pathlib import Path

from gltf_exporter import GLTFExporter


def _safe_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]", "_", name)


def main():
    parser = argparse.ArgumentParser(
        description="Extract Quake II MD2 models to glTF format"
    )
    parser.add_argument(
        "input",
        help="Input MD2 file or directory containing MD2 files",
    )
    parser.add_argument(
        "-o", "--output",
        default="./output",
        help="Output directory for glTF files (default: ./output)",
    )
    parser.add_argument(
        "--frame",
        type=int,
        default=0,
        help="Animation frame to export (default: 0)",
    )
    parser.add_argument(
        "--all-frames",
        action="store_true",
        help="Export every animation frame to its own file",
    )
    parser.add_argument(
        "--apply-translate",
        action="store_true",
        help="Add the frame translate vector to vertex positions",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    # Ensure output directory exists
    os.makedirs(args.output, exist_ok=True)

    # Collect input files
    input_path = Path(args.input)
    if input_path.is_file():
        files = [input_path]
    elif input_path.is_dir():
        files = sorted(input_path.glob("**/*.md2"))
        if not files:
            print(f"No MD2 files found in {input_path}", file=sys.stderr)
            return 1
    else:
        print(f"Input not found: {args.input}", file=sys.stderr)
        return 1

    success_count = 0
    fail_count = 0

    for md2_file in files:
        try:
            exporter = GLTFExporter(str(md2_file), apply_translate=args.apply_translate)
            if args.all_frames:
                frame_indices = range(exporter.model.frame_count)
            else:
                frame_indices = [args.frame]

            for frame_index in frame_indices:
                if args.all_frames:
                    # index prefix keeps names unique when frame labels repeat
                    frame_name = _safe_name(exporter.model.frames[frame_index].name)
                    stem = f"{md2_file.stem}_{frame_index:03d}"
                    if frame_name:
                        stem += f"_{frame_name}"
                    output_file = Path(args.output) / f"{stem}.glb"
                else:
                    output_file = Path(args.output) / f"{md2_file.stem}.glb"

                exporter.frame_index = frame_index
                exporter.export(str(output_file))
                if args.verbose:
                    print(f"Exported: {md2_file} -> {output_file}")
            success_count += 1
        except (ValueError, IndexError, OSError) as e:
            print(f"Failed: {md2_file} - {e}", file=sys.stderr)
            fail_count += 1

    # Summary
    total = success_count + fail_count
    print(f"\nExtracted {success_count}/{total} files to {args.output}")

    return 0 if fail_count == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
