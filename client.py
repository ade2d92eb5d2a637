# client.py

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from mrz_extractor import MrzScanner
from mrz_rows import OcrFragment, fragments_from_lines
from mrz_settings import get_settings
from mrz_stabilizer import Accepted


def load_frame(path: Path, text_mode: bool) -> List[OcrFragment]:
    if text_mode:
        lines = path.read_text(encoding="utf-8").splitlines()
        return fragments_from_lines(ln for ln in lines if ln.strip())
    # pulls in pytesseract only when images are scanned
    from image_ocr import extract_fragments_from_image

    return extract_fragments_from_image(str(path))


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Feed frames through an MRZ scanning session.")
    parser.add_argument("frames", nargs="+", type=Path, help="image files (or text files with --text), one per frame")
    parser.add_argument("--text", action="store_true", help="frames are OCR text files, one line per fragment")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(level=logging.DEBUG if args.verbose else settings.log_level)

    scanner = MrzScanner(settings)
    outcome = scanner.outcome()
    for path in args.frames:
        outcome = scanner.process(load_frame(path, args.text))
        print(json.dumps({"frame": str(path), **outcome.to_dict(settings.century_pivot)}, indent=2))
        if isinstance(outcome, Accepted):
            break

    return 0 if isinstance(outcome, Accepted) else 1


if __name__ == "__main__":
    sys.exit(main())
