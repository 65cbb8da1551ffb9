"""
Bill Extraction using Gemini

Sends a photographed or uploaded bill to a Gemini vision model and asks
for the bill fields as JSON.

IMPORTANT: The model is asked for the period as "Month Year", but its
answer is still treated as untrusted text. Normalizing the period is the
job of billbook.periods, not of this service.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Optional

import google.generativeai as genai
from pydantic import ValidationError
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from billbook.config import GeminiSettings, get_settings
from billbook.models.bill import BillData


class ExtractionError(Exception):
    """Failed to extract bill data from a document."""
    pass


class UnsupportedDocumentError(ExtractionError):
    """Document type or size is not accepted."""
    pass


class BillExtractorInterface(ABC):
    """Anything that turns a document into proposed bill fields."""
    
    @abstractmethod
    async def extract(self, document_bytes: bytes, media_type: str) -> BillData:
        """
        Extract bill fields from a document.
        
        Raises:
            ExtractionError: If nothing usable came back
        """
        pass


BILL_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "billName": {
            "type": "STRING",
            "description": (
                "The name of the company or entity issuing the bill "
                "(e.g., 'Sri Lanka Telecom PLC', 'Comcast', 'City Water Service')."
            ),
        },
        "dateOfPeriod": {
            "type": "STRING",
            "description": (
                "The billing month and year for the charges, formatted strictly "
                "as 'Month Year' (e.g., 'October 2023'). If a date range is given "
                "(e.g., 'Oct 1 - Oct 31' or '01/10/23-31/10/23'), convert it to "
                "'October 2023'. If it spans two months, use the month where the "
                "majority of days fall."
            ),
        },
        "dueDate": {
            "type": "STRING",
            "description": (
                "The date the payment is due (e.g., 'Nov 15, 2023'). "
                "Empty string if not found."
            ),
        },
        "amount": {
            "type": "NUMBER",
            "description": (
                "The total current charges for this billing period. Exclude "
                "'Previous Balance' or a 'Total Payable' that includes arrears."
            ),
        },
        "currency": {
            "type": "STRING",
            "description": (
                "The currency symbol or code (e.g., '$', 'Rs.', 'LKR', 'USD'). "
                "Defaults to '$' if unsure."
            ),
        },
        "summary": {
            "type": "STRING",
            "description": (
                "A very brief, one-sentence summary of what this bill is for "
                "(e.g., 'Monthly internet and voice charges')."
            ),
        },
    },
    "required": ["billName", "amount", "currency", "dateOfPeriod"],
}

EXTRACTION_PROMPT = (
    "Analyze this document. It is likely a utility or service bill. "
    "Extract the biller name, the billing period (formatted strictly as "
    "'Month Year'), the due date, and the 'Current Charges'. "
    "Ignore past due amounts. Format output as JSON."
)


def parse_bill_json(text: Optional[str], default_currency: str = "$") -> BillData:
    """
    Parse the model's JSON answer into BillData.
    
    Tolerates prose or code fences around the JSON object.
    """
    if not text or not text.strip():
        raise ExtractionError("No data returned from the extraction model.")
    
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ExtractionError("Extraction model did not return a JSON object.")
    
    try:
        payload: dict[str, Any] = json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Extraction model returned invalid JSON: {e}") from e
    
    if not payload.get("currency"):
        payload["currency"] = default_currency
    
    try:
        return BillData.model_validate(payload)
    except ValidationError as e:
        raise ExtractionError(f"Extracted data does not look like a bill: {e}") from e


class GeminiBillExtractor(BillExtractorInterface):
    """
    Extractor backed by a Gemini multimodal model.
    
    The document goes inline with the request; nothing is uploaded or kept.
    """
    
    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
        default_currency: Optional[str] = None,
    ):
        self._default_currency = default_currency or get_settings().app.default_currency
        if model is not None:
            self._model = model
        else:
            self._settings = settings or get_settings().gemini
            self._configure_genai()
    
    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
                "response_schema": BILL_RESPONSE_SCHEMA,
            },
        )
    
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(ExtractionError),
        reraise=True,
    )
    async def _generate(self, document_bytes: bytes, media_type: str) -> str:
        response = await self._model.generate_content_async(
            [
                {"mime_type": media_type, "data": document_bytes},
                EXTRACTION_PROMPT,
            ]
        )
        try:
            return response.text
        except ValueError as e:
            # Blocked or empty candidates
            raise ExtractionError(f"Extraction model returned no text: {e}") from e
    
    async def extract(self, document_bytes: bytes, media_type: str) -> BillData:
        """Extract bill fields from the document bytes."""
        if not document_bytes:
            raise ExtractionError("Failed to read file.")
        
        try:
            text = await self._generate(document_bytes, media_type)
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Extraction request failed: {e}") from e
        
        return parse_bill_json(text, self._default_currency)
