# ============================================================================
# src/lab_ingestion/extractors/text_extraction.py
# ============================================================================
"""
AI-assisted Lab Value Extraction

Turns structured document text into RawExtractedValue records:

1. Split the text into line-respecting chunks that fit the model context
2. Prompt the completion backend once per chunk
3. Clean the reply (special tokens, markdown) and parse one value per line
4. Deduplicate across chunks

A chunk whose completion fails contributes nothing; the other chunks
still count. A complete backend outage yields an empty list.

Line format (6 fields):
    TEST_NAME|TEST_TYPE|VALUE|UNIT|REFERENCE_RANGE|ABNORMAL_FLAG
Legacy format (5 fields, test type inferred from the name):
    TEST_NAME|VALUE|UNIT|REFERENCE_RANGE|ABNORMAL_FLAG
"""

import logging
import re
import unicodedata
from typing import Dict, List, Optional, Tuple

from ..config import pipeline_settings
from ..core.context import RawExtractedValue, TestType
from ..llm.base import TextCompletionService
from ..llm.prompts import create_extraction_prompt
from ..utils.parsing import strip_thousands_separators


logger = logging.getLogger(__name__)


# ============================================================================
# RESPONSE CLEANING
# ============================================================================

SPECIAL_TOKENS = [
    "<|eot_id|>",
    "<|end_of_text|>",
    "<|start_header_id|>",
    "<|end_header_id|>",
    "<|begin_of_text|>",
    "<|im_start|>",
    "<|im_end|>",
    "<|end|>",
    "<|system|>",
    "<|user|>",
    "<|assistant|>",
    "<s>",
    "</s>",
    "[INST]",
    "[/INST]",
    "<<SYS>>",
    "<</SYS>>",
]

UNWANTED_PREFIXES = ("Response:", "Assistant:", "System:", "Context:")

_BULLET = re.compile(r'^(?:[-*•]\s+|\d+[.)]\s+)')
_TABLE_RULE = re.compile(r'^[|\s:\-]+$')


def clean_response(response: str) -> str:
    """Strip chat-template tokens, markdown fences, bullets and table borders."""
    text = unicodedata.normalize("NFC", response or "")
    for token in SPECIAL_TOKENS:
        text = text.replace(token, "")

    lines = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("```"):
            continue
        if _TABLE_RULE.match(line):
            continue
        for prefix in UNWANTED_PREFIXES:
            if line.startswith(prefix):
                line = line[len(prefix):].strip()
                break
        line = _BULLET.sub('', line)
        # Markdown table row: "| a | b |"
        if line.startswith('|') and line.endswith('|') and len(line) > 1:
            line = line[1:-1].strip()
        if line:
            lines.append(line)

    return "\n".join(lines)


# ============================================================================
# CHUNKING
# ============================================================================

def chunk_document(text: str, max_chunk_size: int) -> List[str]:
    """
    Split text into chunks of at most max_chunk_size characters.

    Lines are never split. A single line longer than the budget becomes
    a chunk of its own.
    """
    if not text or not text.strip():
        return []
    if len(text) <= max_chunk_size:
        return [text]

    chunks = []
    current: List[str] = []
    current_size = 0

    for line in text.splitlines():
        line_size = len(line) + 1  # newline

        if current and current_size + line_size > max_chunk_size:
            chunks.append("\n".join(current))
            current = []
            current_size = 0

        current.append(line)
        current_size += line_size

    if current:
        chunks.append("\n".join(current))

    return chunks


def build_extraction_prompt(chunk: str, chunk_index: int, total_chunks: int) -> str:
    return create_extraction_prompt(chunk, chunk_index, total_chunks)


# ============================================================================
# LINE PARSING
# ============================================================================

_URINE_KEYWORDS = (
    "urine", "urinalysis", "specific gravity", "urobilinogen",
    "leukocyte esterase", "nitrite", "ketone", "microalbumin",
    "albumin/creatinine", "albumin creatinine", "colony count",
    "casts", "crystals", "epithelial",
)

_NOT_PROVIDED = {"", "unknown", "n/a", "na", "none", "-"}
_NOT_ABNORMAL = {"", "normal", "unknown", "-", "n/a", "none"}
_HEADER_NAMES = {"test_name", "test name", "testname"}


def infer_test_type(test_name: str) -> TestType:
    """URINE when the name carries a urine keyword, otherwise BLOOD."""
    lowered = (test_name or "").lower()
    if any(keyword in lowered for keyword in _URINE_KEYWORDS):
        return TestType.URINE
    if re.search(r'\bua\b', lowered):
        return TestType.URINE
    return TestType.BLOOD


def _optional(field: str) -> Optional[str]:
    return None if field.strip().lower() in _NOT_PROVIDED else field.strip()


def parse_response_line(
    line: str,
    default_confidence: float = 0.8,
    chunk_index: Optional[int] = None,
) -> Tuple[Optional[RawExtractedValue], Optional[str]]:
    """
    Parse one reply line.

    Returns (value, None) on success and (None, reason) when the line is
    skipped. Never raises.
    """
    stripped = (line or "").strip()
    if not stripped:
        return None, "empty line"

    fields = [f.strip() for f in stripped.split("|")]
    if len(fields) < 5:
        return None, f"expected at least 5 fields, got {len(fields)}"

    if fields[0].lower() in _HEADER_NAMES:
        return None, "header line"

    if len(fields) >= 6:
        try:
            test_type = TestType.parse(fields[1])
        except ValueError:
            return None, f"unrecognized test type {fields[1]!r}"
        test_name, _, value, unit, reference_range, flag = fields[:6]
    else:
        test_name, value, unit, reference_range, flag = fields
        test_type = infer_test_type(test_name)

    if not test_name:
        return None, "empty test name"
    if not value:
        return None, "empty value"

    is_abnormal = flag.lower() not in _NOT_ABNORMAL

    return RawExtractedValue(
        test_name=test_name,
        test_type=test_type,
        value=value,
        unit=_optional(unit),
        reference_range=_optional(reference_range),
        is_abnormal=is_abnormal,
        abnormal_flag=flag if is_abnormal else None,
        confidence=default_confidence,
        chunk_index=chunk_index,
    ), None


def parse_response(
    response: str,
    default_confidence: float = 0.8,
    chunk_index: Optional[int] = None,
) -> List[RawExtractedValue]:
    values = []
    skipped = 0
    for line in clean_response(response).splitlines():
        value, reason = parse_response_line(line, default_confidence, chunk_index)
        if value is None:
            skipped += 1
            logger.debug(f"Skipped line {line[:80]!r}: {reason}")
            continue
        values.append(value)

    if skipped:
        logger.debug(f"Chunk {chunk_index}: parsed {len(values)} values, skipped {skipped} lines")
    return values


# ============================================================================
# DEDUPLICATION
# ============================================================================

_NAME_PREFIXES = ("test:", "result:")
_NAME_SUFFIXES = ("(calculated)", "(calc)")


def _normalize_for_dedup(test_name: str, value: str) -> Tuple[str, str]:
    name = " ".join(test_name.lower().split())
    for prefix in _NAME_PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix):].strip()
    for suffix in _NAME_SUFFIXES:
        if name.endswith(suffix):
            name = name[:-len(suffix)].strip()

    normalized_value = strip_thousands_separators(" ".join(value.split()))
    return name, normalized_value


def deduplicate_values(values: List[RawExtractedValue]) -> List[RawExtractedValue]:
    """Drop repeats of the same (name, value); the first occurrence wins."""
    seen = set()
    unique = []
    for value in values:
        key = _normalize_for_dedup(value.test_name, value.value)
        if key in seen:
            continue
        seen.add(key)
        unique.append(value)
    return unique


# ============================================================================
# ORCHESTRATOR
# ============================================================================

class TextExtractionOrchestrator:
    """
    Chunk -> prompt -> parse -> deduplicate.

    The completion backend is injected; tests pass a fake.

    Config options:
        chunk_size: Maximum characters per chunk
        default_confidence: Confidence given to every parsed line
    """

    def __init__(self, completion_service: TextCompletionService, config: Optional[Dict] = None):
        self.completion_service = completion_service
        self.config = config or {}
        self.chunk_size = self.config.get('chunk_size', pipeline_settings.EXTRACTION_CHUNK_SIZE)
        self.default_confidence = self.config.get(
            'default_confidence', pipeline_settings.EXTRACTION_DEFAULT_CONFIDENCE
        )

    async def extract(self, document_text: str) -> List[RawExtractedValue]:
        chunks = chunk_document(document_text, self.chunk_size)
        logger.info(f"Document split into {len(chunks)} chunks for extraction")

        all_values: List[RawExtractedValue] = []
        failed_chunks = 0

        for index, chunk in enumerate(chunks):
            prompt = build_extraction_prompt(chunk, index, len(chunks))
            try:
                response = await self.completion_service.complete(prompt)
            except Exception as e:
                # One bad chunk only costs recall
                failed_chunks += 1
                logger.error(f"Extraction failed for chunk {index + 1}/{len(chunks)}: {e}")
                continue

            chunk_values = parse_response(response, self.default_confidence, index)
            logger.debug(f"Chunk {index + 1}/{len(chunks)}: {len(chunk_values)} values")
            all_values.extend(chunk_values)

        unique = deduplicate_values(all_values)
        logger.info(
            f"Extracted {len(all_values)} values, {len(unique)} after deduplication"
            + (f" ({failed_chunks} chunks failed)" if failed_chunks else "")
        )
        return unique
