from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from docqa.errors import SynthesisFailed
from docqa.extraction import UploadedFile
from docqa.pipeline import ask_with_files
from docqa.settings import load_settings


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Ask a question about local files.")
    parser.add_argument("--question", required=True, help="Question to answer from the files")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("files", nargs="+", help="Paths of the files to upload")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    )

    uploads = [UploadedFile(name=Path(path).name, content=Path(path).read_bytes()) for path in args.files]
    try:
        response = ask_with_files(args.question, uploads, load_settings(), identity="cli")
    except SynthesisFailed as exc:
        print(f"Answer synthesis failed: {exc}", file=sys.stderr)
        return 1

    if response.answer:
        print(response.answer)
    else:
        print(response.extracted or "No text extracted.")

    print("\nFiles:")
    for item in response.files:
        status = item.error or "ok"
        print(f"- {item.name} ({item.type}, {item.size} bytes, {item.textLength} chars): {status}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
