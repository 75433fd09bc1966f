# ============================================================================
# src/lab_ingestion/llm/prompts.py
# ============================================================================
"""
Lab Report Prompt Templates

Provides:
- Per-chunk lab value extraction prompt (pipe-delimited, one value per line)
- Document header prompt (date, laboratory, physician, patient)
"""

from typing import List
from enum import Enum
from dataclasses import dataclass, field


class PromptTask(Enum):
    """Prompted tasks"""
    LAB_VALUE_EXTRACTION = "lab_value_extraction"
    DOCUMENT_INFO = "document_info"


@dataclass
class PromptTemplate:
    """Prompt template"""
    name: str
    task: PromptTask
    template: str
    description: str
    required_fields: List[str]
    optional_fields: List[str] = field(default_factory=list)

    def format(self, **kwargs) -> str:
        """
        Format template with provided values.

        Raises:
            ValueError: a required field is missing
        """
        missing = [f for f in self.required_fields if f not in kwargs]
        if missing:
            raise ValueError(f"Missing required fields: {missing}")

        values = {name: "" for name in self.optional_fields}
        values.update(kwargs)
        return self.template.format(**values)


# Header line the model sometimes echoes back; the parser skips it
EXTRACTION_HEADER = "TEST_NAME|TEST_TYPE|VALUE|UNIT|REFERENCE_RANGE|ABNORMAL_FLAG"


class LabPrompts:
    """
    Collection of lab report prompt templates.
    """

    LAB_VALUE_EXTRACTION_TEMPLATE = PromptTemplate(
        name="lab_value_extraction",
        task=PromptTask.LAB_VALUE_EXTRACTION,
        template="""You are a medical AI assistant specializing in laboratory report analysis. Analyze this lab report section{chunk_context} and extract ALL laboratory values.

Document text{chunk_context}:
{chunk}

For each lab value you find, extract:
1. Test name (exactly as written in the document, preserve abbreviations)
2. Test type: BLOOD for blood, serum or plasma tests, URINE for urinalysis and urine tests
3. Value (the number, or the qualitative result such as Negative, Positive, Trace)
4. Unit (mg/dL, g/dL, %, U/L, ng/mL, etc.)
5. Reference range if provided (e.g. "70-100", "<200", ">40")
6. Abnormal flag if present (High, Low, Critical, H, L, *) - use "Normal" if none

Return ONLY lab values in this exact format, one per line:
""" + EXTRACTION_HEADER + """

Examples of correct format:
Glucose|BLOOD|95|mg/dL|70-100|Normal
Total Cholesterol|BLOOD|220|mg/dL|<200|High
Hemoglobin A1c|BLOOD|6.2|%|<5.7|High
Protein|URINE|Negative|mg/dL|Negative|Normal
Specific Gravity|URINE|1.020|unknown|1.005-1.030|Normal

IMPORTANT RULES:
- Report each test result ONLY ONCE. Do not repeat a line, even if the value appears in several places
- Use "unknown" for missing information (unit, reference range, or flag)
- Use "Normal" for abnormal flag if no flag is present
- Preserve test names exactly as written (don't normalize or expand abbreviations)
- Do not add explanations, headings, bullets or numbering

Return your response now with ONLY the extracted lab values in the specified format:
""",
        description="Extract lab values from one document chunk as pipe-delimited lines",
        required_fields=["chunk"],
        optional_fields=["chunk_context"],
    )

    DOCUMENT_INFO_TEMPLATE = PromptTemplate(
        name="document_info",
        task=PromptTask.DOCUMENT_INFO,
        template="""Analyze this medical document and extract the following basic information.

Document text:
{document_text}

Please extract:
1. Test/Report Date (look for dates near "Date:", "Report Date:", "Collection Date:", etc.)
2. Laboratory Name (look for lab company names)
3. Ordering Physician (look for doctor names)
4. Patient Name (if clearly visible and not redacted)

Return your response in this exact format:
TEST_DATE: YYYY-MM-DD or "unknown"
LAB_NAME: Laboratory name or "unknown"
PHYSICIAN: Doctor name or "unknown"
PATIENT: Patient name or "unknown"
""",
        description="Extract report header fields",
        required_fields=["document_text"],
    )


def create_extraction_prompt(chunk: str, chunk_index: int, total_chunks: int) -> str:
    """
    Create the extraction prompt for one chunk.

    Args:
        chunk: Chunk text
        chunk_index: Zero-based chunk position
        total_chunks: Number of chunks in the document
    """
    chunk_context = f" (Chunk {chunk_index + 1} of {total_chunks})" if total_chunks > 1 else ""
    return LabPrompts.LAB_VALUE_EXTRACTION_TEMPLATE.format(
        chunk=chunk,
        chunk_context=chunk_context,
    )


def create_document_info_prompt(document_text: str) -> str:
    return LabPrompts.DOCUMENT_INFO_TEMPLATE.format(document_text=document_text)
