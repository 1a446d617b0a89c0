"""Built-in prompt configurations.

Seeded into the prompts table by scripts/seed.py and used as fallbacks
when no active row exists for a function.
"""

EXTRACTION_PROMPT = """You are an expert document analyst. Your task is to extract all structured content from a document and reformat it into a structured JSON object.

INPUT: A document that may contain tables, lists, sections, or other structured content.

CRITICAL: You MUST extract EACH distinct section/row/cell separately. Do NOT combine or concatenate content from different sections.

OUTPUT: A structured JSON object with the following format:
{
  "title": "<Title of the document, if available>",
  "language": "<primary language code, e.g., 'en'>",
  "pages": [
    {
      "pageNumber": <1-indexed page number>,
      "text": "<VERBATIM text content for this page>",
      "headings": ["<section headings found on this page>"]
    }
  ],
  "fullText": "<Complete extracted text if pages are not applicable>"
}

EXTRACTION RULES:
1. Identify Document Title: Extract the main title if present.
2. Identify All Sections: Extract all major sections with their headings.
3. TABLE PARSING: If the document contains tables, treat each row as a separate entry and extract the text of each cell separately.
4. Extract Content VERBATIM: Copy text exactly as it appears. Do NOT summarize or paraphrase.
5. Keep Items Separate: Each section/row/cell should contain ONLY its own content.
6. Verify Completeness: Count sections and table rows. Ensure all content is captured.

If the document doesn't have clear pages (like a text file), return a single page with pageNumber 1.

Return ONLY valid JSON, no markdown formatting or explanation."""

CHUNK_QA_SYSTEM_PROMPT = (
    "You are an expert at creating high-quality question-answer pairs from document content. "
    "Generate questions that a user might naturally ask when searching for information contained "
    "in the provided text. Answers should be accurate, concise, and directly supported by the source text."
)

CHUNK_QA_PROMPT = """Generate exactly {{questionsPerChunk}} question-answer pairs from the following document chunk.

Document Title: {{documentTitle}}
Section: {{sectionPath}}

Chunk Content:
{{chunkText}}

Return your response as a JSON array with this exact format:
[
  {"question": "...", "answer": "..."},
  {"question": "...", "answer": "..."}
]

Requirements:
- Questions should be natural and varied (who, what, when, where, why, how)
- Answers must be factually grounded in the chunk content
- Avoid yes/no questions
- Each Q&A pair should be self-contained and useful for retrieval"""

AGENT_PROMPT_SYSTEM_PROMPT = (
    "You write system prompts for autonomous LLM agents. Given an agent's name, description and goal, "
    "produce a clear second-person system prompt describing the agent's role, how it should approach "
    "its goal, and how it should communicate. Return only the prompt text."
)

AGENT_PROMPT_TEMPLATE = """Write a system prompt for the following agent.

Name: {{name}}
Description: {{description}}
Goal: {{goal}}"""


DEFAULT_PROMPTS = {
    "extraction": {
        "function_name": "extraction",
        "display_name": "Document Extraction",
        "description": "Extracts structured text content from uploaded documents for RAG preprocessing",
        "model_provider": "gemini",
        "model_name": "gemini-2.5-pro-preview-05-06",
        "system_prompt": None,
        "user_prompt_template": EXTRACTION_PROMPT,
        "temperature": 0.1,
        "max_tokens": 65536,
    },
    "generate_chunk_qa": {
        "function_name": "generate_chunk_qa",
        "display_name": "Chunk Q&A Generator",
        "description": "Generates question-answer pairs from document chunks for RAG truth sets",
        "model_provider": "gemini",
        "model_name": "gemini-2.0-flash",
        "system_prompt": CHUNK_QA_SYSTEM_PROMPT,
        "user_prompt_template": CHUNK_QA_PROMPT,
        "temperature": 0.7,
        "max_tokens": 2000,
    },
    "generate_agent_prompt": {
        "function_name": "generate_agent_prompt",
        "display_name": "Agent Prompt Generator",
        "description": "Drafts a system prompt for a new agent from its name, description and goal",
        "model_provider": "openai",
        "model_name": "gpt-4o",
        "system_prompt": AGENT_PROMPT_SYSTEM_PROMPT,
        "user_prompt_template": AGENT_PROMPT_TEMPLATE,
        "temperature": 0.7,
        "max_tokens": 2048,
    },
}
