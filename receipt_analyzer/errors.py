from __future__ import annotations

CLEARER_PHOTO = "Please try with a clearer, well-lit receipt."


class ScanError(Exception):
	"""Base for failures the caller maps to a user-facing message."""

	code = "SCAN_FAILED"
	user_message = CLEARER_PHOTO
	retryable = False

	def __init__(self, detail: str | None = None, *, provider: str | None = None) -> None:
		super().__init__(detail or self.user_message)
		self.detail = detail or self.user_message
		self.provider = provider
		# extraction tiers tried before giving up, when known
		self.attempts: list = []


class NoTextExtracted(ScanError):
	"""The OCR backend answered but produced no usable text."""

	code = "NO_TEXT_EXTRACTED"


class ExtractionTransportError(ScanError):
	"""Network or backend failure while extracting text; the next tier may succeed."""

	code = "EXTRACTION_TRANSPORT_ERROR"
	user_message = (
		"Could not read text from the image. " + CLEARER_PHOTO
	)
	retryable = True


class ProviderUnavailable(ScanError):
	code = "PROVIDER_UNAVAILABLE"
	retryable = True


class UnknownProvider(ScanError):
	code = "UNKNOWN_PROVIDER"
	user_message = "Requested OCR provider is not registered."


class LabelingFailed(ScanError):
	"""AI categorization failed; keyword rules take over."""

	code = "LABELING_FAILED"
	user_message = "Could not categorize the receipt items."
	retryable = True
