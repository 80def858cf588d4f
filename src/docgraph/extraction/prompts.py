"""Prompt templates for the extraction oracle."""

DOCUMENT_BLOCK = """--- DOCUMENT {index}: "{title}" ---
{content}"""

TRUNCATION_NOTE = "\n[Content truncated...]"

ANALYSIS_PROMPT = """You are an expert document analyst. Analyze these {count} document(s) to identify their themes, the terms they define, and how they relate to each other.

Documents:
{documents}

Please provide:
1. **Themes**: Up to {max_themes} of the most significant themes per document. Give each a category that fits the actual content (e.g. technology, science, business, culture), an importance weight between 0.1 and 1.0 based on prominence, and a confidence. Only include themes with confidence of at least {min_confidence}.
2. **Definitions**: {definitions_instruction}
3. **Shared Concepts**: {relationships_instruction}
4. **Summary**: A 2-3 sentence summary of each document.

Only extract information present in the documents. Use consistent wording for the same concept across documents.

Respond in this exact JSON format:
{{
  "shared_concepts": [
    {{"concept": "shared theme name", "category": "theme category", "appears_in": [1, 2], "relationship_strength": 0.85, "importance": 0.9}}
  ],
  "documents": [
    {{
      "document_id": 1,
      "title": "document title",
      "main_themes": [
        {{"theme": "theme name", "category": "category", "importance": 0.85, "confidence": 0.9, "subthemes": ["subtheme"], "context": "where the theme appears"}}
      ],
      "definitions": [
        {{"term": "exact term", "definition": "definition from the document", "type": "technical|conceptual|procedural|categorical|quantitative", "context": "surrounding sentence", "importance": 0.7}}
      ],
      "summary": "summary here",
      "thematic_focus": ["primary category", "secondary category"]
    }}
  ]
}}"""

DEFINITIONS_ON = "Technical terms and key concepts with the definition as stated in the document, its surrounding context, and an importance weight."
DEFINITIONS_OFF = "Skip definitions; return an empty list for each document."
RELATIONSHIPS_ON = "Themes that appear in more than one document, even when worded differently. List the 1-based document numbers each appears in and a relationship strength: strong (0.8-1.0), medium (0.5-0.8), weak (0.3-0.5)."
RELATIONSHIPS_OFF = "Skip cross-document relationships; return an empty list."


def build_analysis_prompt(documents: list[dict], options: dict, max_chars: int = 4000) -> str:
    """Render the analysis prompt for a batch of ``{title, content}`` documents."""
    blocks = []
    for i, doc in enumerate(documents, 1):
        content = doc.get("content") or ""
        text = content[:max_chars] + (TRUNCATION_NOTE if len(content) > max_chars else "")
        blocks.append(DOCUMENT_BLOCK.format(index=i, title=doc.get("title") or f"Document {i}", content=text))

    return ANALYSIS_PROMPT.format(
        count=len(documents),
        documents="\n\n".join(blocks),
        max_themes=options.get("max_themes_per_document", 8),
        min_confidence=options.get("min_theme_confidence", 0.7),
        definitions_instruction=DEFINITIONS_ON if options.get("include_definitions", True) else DEFINITIONS_OFF,
        relationships_instruction=RELATIONSHIPS_ON if options.get("detect_relationships", True) else RELATIONSHIPS_OFF,
    )
