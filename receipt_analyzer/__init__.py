"""Receipt image to categorized spending analysis."""

from .categories import KeywordTable, load_knowledge_base
from .errors import ExtractionTransportError, NoTextExtracted, ScanError
from .pipeline import analyze_text
from .schemas import Category, ReceiptAnalysis

__all__ = [
	"Category",
	"ExtractionTransportError",
	"KeywordTable",
	"NoTextExtracted",
	"ReceiptAnalysis",
	"ScanError",
	"analyze_text",
	"load_knowledge_base",
]
