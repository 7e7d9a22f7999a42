"""
PDF Extractor Module

Extracts and categorizes transactions from PDF bank and credit card
statements using Claude document input.
"""

import base64
import hashlib
import json
import logging
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path

import anthropic

from .ai_settings import (
    available_categories,
    create_client,
    load_category_config,
    preference_instructions,
    preferences_section,
    resolve_ai_settings,
)
from .csv_parsers.base import ACCOUNT_TYPES, ParsedTransaction, ParseResult

logger = logging.getLogger(__name__)

PDF_PARSER_NAME = "PDF (AI)"


class PDFExtractor:
    """Extracts transaction data from PDF statements using Claude."""

    MAX_TOKENS = 8192
    TEMPERATURE = 0.1

    SYSTEM_PROMPT = (
        "You are a precise financial document parser. Always respond with valid JSON only. "
        "Extract every transaction you can find in the statement. "
        "Pay attention to date formats and amount signs."
    )

    EXTRACTION_PROMPT = """Analyze this bank/credit card statement and extract all transactions.

1. Identify the financial institution (e.g., "Chase", "American Express", "Wells Fargo").
2. Determine the account type: "credit_card" or "bank" (checking/savings).
3. Find the statement period (billing cycle) and return statementPeriodStart and statementPeriodEnd in YYYY-MM-DD format.
4. Extract ALL transactions with:
   - date: Transaction date in YYYY-MM-DD format
   - description: Original transaction description text
   - amount: Negative for expenses/charges/purchases, positive for income/credits/payments received
   - category: One of: {categories}
   - subcategory: Optional, more specific categorization
   - merchant: Clean business name (e.g., "AMZN MKTP" -> "Amazon", "SQ *COFFEE SHOP" -> "Coffee Shop")
   - isTransfer: true if this is a transfer between accounts, credit card payment, or not real spending/income
{preferences}
AMOUNT RULES:
- For credit cards: purchases/charges are NEGATIVE, payments/credits are POSITIVE
- For bank accounts: withdrawals/debits are NEGATIVE, deposits/credits are POSITIVE
- Interest charges and fees are NEGATIVE

Return ONLY valid JSON in this exact format:
{{
  "institution": "Bank Name",
  "accountType": "credit_card",
  "statementPeriodStart": "2024-12-02",
  "statementPeriodEnd": "2025-01-01",
  "transactions": [
    {{
      "date": "2024-01-15",
      "description": "Original description from statement",
      "amount": -42.50,
      "category": "Food",
      "subcategory": "Restaurants",
      "merchant": "Chipotle",
      "isTransfer": false
    }}
  ]
}}"""

    def __init__(
        self,
        store=None,
        config_dir: Path | str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        client: anthropic.Anthropic | None = None
    ):
        """Initialize the PDF extractor.

        Args:
            store: Optional ledger store (categories, preferences, AI settings)
            config_dir: Path to configuration directory
            api_key: Anthropic API key (falls back to stored setting, then ANTHROPIC_API_KEY)
            model: Model to use for extraction
            client: Pre-built Anthropic client
        """
        self.store = store
        self.config_dir = Path(config_dir) if config_dir else Path(__file__).parent.parent.parent / "config"
        settings = resolve_ai_settings(store, api_key=api_key, model=model)
        self.model = settings.model
        self.client = client or create_client(settings)

    def extract_from_file(self, file_path: Path | str) -> ParseResult:
        """Extract transactions from a PDF file.

        Args:
            file_path: Path to the PDF file

        Returns:
            ParseResult
        """
        file_path = Path(file_path)

        if not file_path.exists():
            return ParseResult.failure(f"File not found: {file_path}")

        if file_path.suffix.lower() != ".pdf":
            return ParseResult.failure(f"Not a PDF file: {file_path}")

        with open(file_path, "rb") as f:
            pdf_data = f.read()

        return self.extract_from_bytes(pdf_data, source_name=file_path.name)

    def extract_from_bytes(self, pdf_data: bytes, source_name: str = "uploaded.pdf") -> ParseResult:
        """Extract transactions from PDF bytes.

        Args:
            pdf_data: PDF file contents as bytes
            source_name: Name of the source file (for logging)

        Returns:
            ParseResult carrying statement period bounds when found
        """
        if not pdf_data.lstrip()[:5].startswith(b"%PDF"):
            return ParseResult.failure("Could not read PDF: file is not a PDF document")

        if b"/Encrypt" in pdf_data:
            return ParseResult.failure("PDF is password protected. Please provide an unprotected statement.")

        if self.client is None:
            return ParseResult.failure("No AI API key configured. Add an Anthropic API key in Settings.")

        categories = available_categories(self.store, load_category_config(self.config_dir))
        prompt = self.EXTRACTION_PROMPT.format(
            categories=", ".join(categories),
            preferences=preferences_section(preference_instructions(self.store)),
        )

        file_hash = hashlib.sha256(pdf_data).hexdigest()[:16]
        logger.info(f"Extracting from PDF: {source_name} (hash: {file_hash})")

        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=self.MAX_TOKENS,
                temperature=self.TEMPERATURE,
                system=self.SYSTEM_PROMPT,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "document",
                                "source": {
                                    "type": "base64",
                                    "media_type": "application/pdf",
                                    "data": base64.standard_b64encode(pdf_data).decode("utf-8")
                                }
                            },
                            {
                                "type": "text",
                                "text": prompt
                            }
                        ]
                    }
                ]
            )
        except anthropic.APIError as e:
            logger.error(f"Claude API error: {e}")
            return ParseResult.failure(f"Failed to parse statement: {e}")

        try:
            response_text = message.content[0].text
        except (IndexError, AttributeError, TypeError):
            logger.error(f"Claude returned no text content for {source_name}")
            return ParseResult.failure(
                "AI could not parse the statement. The document may not be a supported statement format."
            )

        if not isinstance(response_text, str):
            return ParseResult.failure(
                "AI could not parse the statement. The document may not be a supported statement format."
            )

        return self._parse_response(response_text, categories)

    def _parse_response(self, response_text: str, categories: list[str]) -> ParseResult:
        """Parse Claude's response into a ParseResult.

        Args:
            response_text: Raw response from Claude
            categories: Categories the transactions may carry

        Returns:
            ParseResult
        """
        match = re.search(r"\{[\s\S]*\}", response_text)
        if not match:
            return ParseResult.failure(
                "AI could not parse the statement. The document may not be a supported statement format."
            )

        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON from PDF extraction: {e}")
            return ParseResult.failure("AI response was not valid JSON. Please try again.")

        if not isinstance(data, dict):
            return ParseResult.failure("AI response was not valid JSON. Please try again.")

        institution = data.get("institution") or "Unknown"
        account_type = data.get("accountType")
        if account_type not in ACCOUNT_TYPES:
            account_type = "bank"

        result = ParseResult(
            success=True,
            account_type=account_type,
            institution=institution,
            parser_name=PDF_PARSER_NAME,
            statement_period_start=_iso_date(data.get("statementPeriodStart")),
            statement_period_end=_iso_date(data.get("statementPeriodEnd")),
        )

        for i, txn_data in enumerate(data.get("transactions") or [], start=1):
            txn = self._parse_transaction(txn_data, categories)
            if txn is None:
                result.warnings.append(f"Transaction {i}: missing or invalid date, description or amount")
                continue
            result.transactions.append(txn)

        if not result.transactions:
            return ParseResult.failure(
                "No transactions found in this document.",
                account_type=account_type,
                institution=institution,
            )

        logger.info(f"Extracted {result.transaction_count} transactions from {institution} PDF")
        return result

    def _parse_transaction(self, data, categories: list[str]) -> ParsedTransaction | None:
        """Parse a transaction from extracted data.

        Args:
            data: Transaction dictionary from Claude response
            categories: Allowed category names

        Returns:
            ParsedTransaction or None
        """
        if not isinstance(data, dict):
            return None

        txn_date = _iso_date(data.get("date"))
        description = _text(data.get("description"))
        if not txn_date or not description:
            return None

        amount = data.get("amount")
        if isinstance(amount, bool) or amount is None:
            return None
        try:
            amount = Decimal(str(amount).replace(",", "").replace("$", ""))
        except InvalidOperation:
            return None
        if not amount.is_finite():
            return None

        category = data.get("category")
        if category not in categories:
            category = None

        return ParsedTransaction(
            date=txn_date,
            description=description,
            amount=amount,
            category=category,
            subcategory=_text(data.get("subcategory")) or None,
            merchant=_text(data.get("merchant")) or None,
            is_transfer=bool(data.get("isTransfer", False)),
            raw_data=data,
        )


def _text(value) -> str:
    """Stripped string value, or empty for anything that is not a string."""
    if not isinstance(value, str):
        return ""
    return value.strip()


def _iso_date(value) -> str | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").strftime("%Y-%m-%d")
    except ValueError:
        return None
