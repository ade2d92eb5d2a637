# api.py

import logging
import threading
import time
import uuid
from io import BytesIO
from typing import Dict, List

import pytesseract
from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from PIL import Image
from pydantic import BaseModel, Field

from image_ocr import extract_fragments_from_pil_image
from mrz_extractor import MrzScanner, extract_mrz_from_fragments, match_level
from mrz_rows import OcrFragment
from mrz_settings import get_settings
from mrz_stabilizer import FrameGate

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Passport MRZ Extraction API")


class FragmentIn(BaseModel):
    text: str
    center_y: float = 0.0
    left: float = 0.0
    height: float = 0.0

    def to_fragment(self) -> OcrFragment:
        return OcrFragment(raw=self.text, center_y=self.center_y, left=self.left, height=self.height)


class FragmentsIn(BaseModel):
    fragments: List[FragmentIn] = Field(default_factory=list)


class ScanSession:
    def __init__(self):
        self.scanner = MrzScanner(settings)
        self.gate = FrameGate(settings.frame_interval_ms)
        # the scanner is fed from threadpool workers
        self.lock = threading.Lock()
        self.last_seen = time.monotonic()

    def touch(self) -> None:
        self.last_seen = time.monotonic()


sessions: Dict[str, ScanSession] = {}


def evict_idle_sessions(ttl_s: float) -> int:
    cutoff = time.monotonic() - ttl_s
    idle = [sid for sid, s in list(sessions.items()) if s.last_seen < cutoff]
    for sid in idle:
        sessions.pop(sid, None)
    if idle:
        logger.info("Evicted %d idle scan session(s)", len(idle))
    return len(idle)


def get_session(session_id: str) -> ScanSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Unknown scan session.")
    session.touch()
    return session


def read_upload_image(file: UploadFile, contents: bytes) -> Image.Image:
    if not file.content_type or not file.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Please upload an image file.")
    try:
        return Image.open(BytesIO(contents))
    except OSError as e:
        raise HTTPException(status_code=400, detail=f"Unreadable image: {e}")


def run_ocr(img: Image.Image) -> List[OcrFragment]:
    try:
        return extract_fragments_from_pil_image(img)
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as e:
        logger.warning("OCR backend failed: %s", e)
        raise HTTPException(status_code=502, detail=f"OCR backend failed: {e}")


def single_shot(fragments: List[OcrFragment]) -> JSONResponse:
    result = extract_mrz_from_fragments(fragments, settings)
    if result is None:
        raise HTTPException(status_code=422, detail="No MRZ could be decoded.")
    return JSONResponse(
        content={
            "mrz_type": result.format.name,
            "match": match_level(result),
            "relaxed": result.relaxed,
            "corrected": result.corrected,
            "fields": result.mrz.to_dict(settings.century_pivot),
        }
    )


@app.get("/health")
async def health():
    return {"status": "ok", "sessions": len(sessions)}


# OCR endpoints are plain `def` so FastAPI runs them in its threadpool;
# pytesseract blocks and would otherwise stall the event loop.
@app.post("/extract_mrz_from_image")
def extract_mrz_from_image(file: UploadFile = File(...)):
    img = read_upload_image(file, file.file.read())
    return single_shot(run_ocr(img))


@app.post("/extract_mrz_from_fragments")
async def extract_mrz_from_fragments_endpoint(body: FragmentsIn):
    return single_shot([f.to_fragment() for f in body.fragments])


@app.post("/sessions", status_code=201)
async def create_session():
    evict_idle_sessions(settings.session_idle_ttl_s)
    session_id = uuid.uuid4().hex
    sessions[session_id] = ScanSession()
    logger.info("Created scan session %s", session_id)
    return {"session_id": session_id, **sessions[session_id].scanner.outcome().to_dict()}


@app.get("/sessions/{session_id}")
async def session_status(session_id: str):
    session = get_session(session_id)
    return {
        "session_id": session_id,
        "scanning": session.scanner.scanning,
        **session.scanner.outcome().to_dict(settings.century_pivot),
    }


@app.post("/sessions/{session_id}/fragments")
def submit_fragments(session_id: str, body: FragmentsIn):
    session = get_session(session_id)
    with session.lock:
        outcome = session.scanner.process(f.to_fragment() for f in body.fragments)
    return outcome.to_dict(settings.century_pivot)


@app.post("/sessions/{session_id}/frame")
def submit_frame(session_id: str, file: UploadFile = File(...)):
    session = get_session(session_id)
    if not session.scanner.scanning:
        return session.scanner.outcome().to_dict(settings.century_pivot)

    img = read_upload_image(file, file.file.read())
    if not session.gate.try_enter():
        return {"status": "dropped", "message": "Frame skipped, recognition busy or too soon."}
    try:
        fragments = run_ocr(img)
        with session.lock:
            outcome = session.scanner.process(fragments)
    finally:
        session.gate.leave()
    return outcome.to_dict(settings.century_pivot)


@app.post("/sessions/{session_id}/reset")
def reset_session(session_id: str):
    session = get_session(session_id)
    with session.lock:
        session.scanner.reset()
        return session.scanner.outcome().to_dict()


@app.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str):
    get_session(session_id)
    sessions.pop(session_id, None)
