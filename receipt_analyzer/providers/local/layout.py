"""Rebuild printed receipt rows from tesseract word boxes.

Tesseract often files an item name and its price under different blocks
when the gap between them is wide, so its own line order can separate
them. Rows are rebuilt from box geometry instead: a word joins the current
row when its vertical center falls inside that row's band.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Sequence

MIN_WORD_CONF = 30.0


@dataclass
class Row:
	top: int
	bottom: int
	words: list[tuple[int, str]] = field(default_factory=list)

	def text(self) -> str:
		return " ".join(word for _, word in sorted(self.words))


def _words(
	data: Mapping[str, Sequence[Any]], min_conf: float
) -> Iterator[tuple[int, int, int, str]]:
	for i, raw in enumerate(data["text"]):
		word = str(raw or "").strip()
		if not word:
			continue
		try:
			conf = float(data["conf"][i])
		except (TypeError, ValueError):
			continue
		if conf < min_conf:
			continue
		top = int(data["top"][i])
		yield int(data["left"][i]), top, top + int(data["height"][i]), word


def group_rows(data: Mapping[str, Sequence[Any]], min_conf: float = MIN_WORD_CONF) -> list[str]:
	"""Text rows, top to bottom, words left to right, from ``image_to_data`` output."""
	rows: list[Row] = []
	for left, top, bottom, word in sorted(_words(data, min_conf), key=lambda w: (w[1], w[0])):
		center = (top + bottom) / 2
		if rows and rows[-1].top <= center <= rows[-1].bottom:
			rows[-1].words.append((left, word))
		else:
			rows.append(Row(top=top, bottom=bottom, words=[(left, word)]))
	return [row.text() for row in rows]
