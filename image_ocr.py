# image_ocr.py

import logging
from collections import OrderedDict
from typing import Dict, List, Tuple

import pytesseract
from PIL import Image
from pytesseract import Output

from mrz_rows import OcrFragment

logger = logging.getLogger(__name__)

# If Tesseract is not in PATH, set the full path:
# pytesseract.pytesseract.tesseract_cmd = r"C:\Program Files\Tesseract-OCR\tesseract.exe"

# MRZ alphabet only; single uniform block of text
MRZ_TESSERACT_CONFIG = "--psm 6 -c tessedit_char_whitelist=ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789<"


def fragments_from_tesseract_data(data: Dict[str, List]) -> List[OcrFragment]:
    """
    Group word boxes from `image_to_data` by (block, paragraph, line) into
    one fragment per recognized line, keeping the line's bounding box.
    """
    lines: "OrderedDict[Tuple[int, int, int], List[int]]" = OrderedDict()
    for i, word in enumerate(data["text"]):
        if not str(word).strip():
            continue
        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        lines.setdefault(key, []).append(i)

    fragments = []
    for idxs in lines.values():
        idxs.sort(key=lambda i: data["left"][i])
        top = min(data["top"][i] for i in idxs)
        bottom = max(data["top"][i] + data["height"][i] for i in idxs)
        left = min(data["left"][i] for i in idxs)
        text = " ".join(str(data["text"][i]) for i in idxs)
        fragments.append(
            OcrFragment(raw=text, center_y=(top + bottom) / 2.0, left=float(left), height=float(bottom - top))
        )
    return fragments


def extract_fragments_from_pil_image(img: Image.Image, config: str = MRZ_TESSERACT_CONFIG) -> List[OcrFragment]:
    data = pytesseract.image_to_data(img, config=config, output_type=Output.DICT)
    fragments = fragments_from_tesseract_data(data)
    logger.debug("Tesseract produced %d line fragments", len(fragments))
    return fragments


def extract_fragments_from_image(image_path: str) -> List[OcrFragment]:
    with Image.open(image_path) as img:
        return extract_fragments_from_pil_image(img)


if __name__ == "__main__":
    for frag in extract_fragments_from_image("passport_sample.jpg"):
        print(f"y={frag.center_y:7.1f} x={frag.left:7.1f} h={frag.height:5.1f}  {frag.raw}")
