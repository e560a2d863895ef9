from .base import Provider
from .fixture import FixtureProvider
from .gemini import GeminiProvider
from .local import LocalProvider
from .ocrspace import OCRSpaceProvider

__all__ = [
	"Provider",
	"FixtureProvider",
	"GeminiProvider",
	"LocalProvider",
	"OCRSpaceProvider",
]
