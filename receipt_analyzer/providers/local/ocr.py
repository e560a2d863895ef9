import io
import logging
import os
import time

import cv2
import numpy as np
import pytesseract
from PIL import Image, ImageOps

from .layout import group_rows

log = logging.getLogger(__name__)

OCR_DEBUG_DIR = os.getenv("OCR_DEBUG_DIR")

# small phone shots are upscaled so glyphs reach a size tesseract reads well
MIN_EDGE = 1200
MAX_EDGE = 3000
THRESH_BLOCK = 31
THRESH_OFFSET = 15
DESKEW_MIN_ANG = 0.5
DESKEW_MAX_ANG = 10.0
# psm 4: one column of text with lines of varying size
TESS_CONFIG = "--oem 3 --psm 4 -c preserve_interword_spaces=1"


def _debug_save(img, step):
	if not OCR_DEBUG_DIR:
		return
	os.makedirs(OCR_DEBUG_DIR, exist_ok=True)
	path = os.path.join(OCR_DEBUG_DIR, f"{step}.png")
	cv2.imwrite(path, img)
	log.debug("wrote debug image: %s", path)


def _load_gray(image_bytes: bytes):
	# phones store rotation in exif rather than in the pixels
	img = ImageOps.exif_transpose(Image.open(io.BytesIO(image_bytes)))
	return np.array(img.convert("L"))


def _rescale(gray):
	h, w = gray.shape
	edge = max(h, w)
	if edge < MIN_EDGE:
		scale, interp = MIN_EDGE / edge, cv2.INTER_CUBIC
	elif edge > MAX_EDGE:
		scale, interp = MAX_EDGE / edge, cv2.INTER_AREA
	else:
		return gray
	return cv2.resize(gray, (int(w * scale), int(h * scale)), interpolation=interp)


def _binarize(gray):
	"""Black ink on white; adaptive so shadows across the paper do not wipe out text."""
	return cv2.adaptiveThreshold(
		cv2.medianBlur(gray, 3),
		255,
		cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
		cv2.THRESH_BINARY,
		THRESH_BLOCK,
		THRESH_OFFSET,
	)


def _skew_angle(binary) -> float:
	ink = cv2.findNonZero(cv2.bitwise_not(binary))
	if ink is None:
		return 0.0
	angle = cv2.minAreaRect(ink)[-1]
	# opencv versions disagree on the range; fold into (-45, 45]
	if angle < -45:
		angle += 90
	elif angle > 45:
		angle -= 90
	return angle


def _deskew(binary):
	angle = _skew_angle(binary)
	if not DESKEW_MIN_ANG <= abs(angle) <= DESKEW_MAX_ANG:
		log.debug("skip deskew: %.1f deg", angle)
		return binary
	h, w = binary.shape
	matrix = cv2.getRotationMatrix2D((w / 2.0, h / 2.0), angle, 1.0)
	return cv2.warpAffine(
		binary, matrix, (w, h), flags=cv2.INTER_NEAREST, borderValue=255
	)


def preprocess(image_bytes: bytes):
	gray = _rescale(_load_gray(image_bytes))
	_debug_save(gray, "1_gray")
	binary = _deskew(_binarize(gray))
	_debug_save(binary, "2_binary")
	return binary


def extract_text(image_bytes: bytes) -> str:
	"""One output line per printed receipt row, so names stay next to their prices."""
	t0 = time.perf_counter()
	data = pytesseract.image_to_data(
		preprocess(image_bytes),
		lang="eng",
		config=TESS_CONFIG,
		output_type=pytesseract.Output.DICT,
	)
	rows = group_rows(data)
	log.info("ocr time: %.2fs | %d rows", time.perf_counter() - t0, len(rows))
	return "\n".join(rows)
