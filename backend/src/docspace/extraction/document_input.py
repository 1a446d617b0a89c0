"""Turn stored file bytes into LLM input for extraction.

PDFs travel as document attachments. Word documents are converted to
text with python-docx. Text-like files are decoded and inlined into the
prompt. Anything else is attached with its own MIME type.
"""

from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional, Tuple

import docx

from ..domain.ai.ports import Attachment, LLMMessage
from ..prompts.service import PromptConfig

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
OCTET_STREAM = "application/octet-stream"

TEXT_MIME_TYPES = {
    "application/json",
    "application/xml",
    "application/x-yaml",
    "application/yaml",
    "application/csv",
    "application/javascript",
}


@dataclass
class DocumentInput:
    """Either inline text or a binary attachment, never both."""
    text: Optional[str] = None
    attachment: Optional[Attachment] = None


def is_pdf(mime_type: Optional[str], file_name: str) -> bool:
    if mime_type and "pdf" in mime_type:
        return True
    return file_name.lower().endswith(".pdf")


def is_word_document(mime_type: Optional[str], file_name: str) -> bool:
    if mime_type and "wordprocessingml" in mime_type:
        return True
    return file_name.lower().endswith(".docx")


def is_text_like(mime_type: Optional[str]) -> bool:
    if not mime_type:
        return False
    return mime_type.startswith("text/") or mime_type in TEXT_MIME_TYPES


def docx_to_text(data: bytes) -> str:
    """Paragraph text followed by table rows (cells joined with tabs)."""
    document = docx.Document(BytesIO(data))
    lines = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                lines.append("\t".join(cells))
    return "\n".join(lines)


def build_document_input(data: bytes, mime_type: Optional[str], file_name: str) -> DocumentInput:
    if is_word_document(mime_type, file_name):
        return DocumentInput(text=docx_to_text(data))
    if is_pdf(mime_type, file_name):
        return DocumentInput(attachment=Attachment(mime_type=PDF_MIME, data=data, file_name=file_name))
    if is_text_like(mime_type):
        return DocumentInput(text=data.decode("utf-8", errors="replace"))
    return DocumentInput(
        attachment=Attachment(mime_type=mime_type or OCTET_STREAM, data=data, file_name=file_name)
    )


def build_extraction_request(
    config: PromptConfig,
    document: DocumentInput,
    file_name: str,
) -> Tuple[List[LLMMessage], List[Attachment]]:
    """Messages and attachments for one extraction call."""
    messages: List[LLMMessage] = []
    if config.system_prompt:
        messages.append(LLMMessage(role="system", content=config.system_prompt))

    prompt = config.user_prompt_template
    if document.text is not None:
        prompt = f"{prompt}\n\nDOCUMENT ({file_name}):\n{document.text}"
    messages.append(LLMMessage(role="user", content=prompt))

    attachments = [document.attachment] if document.attachment else []
    return messages, attachments
