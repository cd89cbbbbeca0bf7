"""Default prompt texts for research and datasheet generation.

`{brand}` and `{model}` are the only placeholders recognised in
administrator-editable prompts.
"""

from __future__ import annotations

PRODUCTS_SYSTEM_TYPE = "PRODUCTS"

DEFAULT_PRODUCTS_PROMPT = """You are an expert product researcher. Your task is to research the following product in depth and provide detailed information.

Product: {brand} {model}

Please provide:
1. General product description
2. Main features
3. Technical specifications
4. Approximate price and availability
5. Pros and cons
6. Comparison with competitors
7. User opinions and reviews
8. Usage recommendations

Return the information as JSON with the following keys: description, features (array), specifications (object), price, pros (array), cons (array), competitors (array), opinions, recommendations."""

WEB_SEARCH_INSTRUCTION = (
    "IMPORTANT: To answer this request you MUST use the web search tool to obtain "
    "up-to-date, accurate information. Do not answer from prior knowledge alone."
)

DATASHEET_SYSTEM_PROMPT = """Goal: write the final product datasheet following the mandatory structure and using the keywords (marked in bold).

IMPORTANT: Return the datasheet as valid HTML using only these tags:
- h1 for the main title
- h2 for main section titles
- h3 for subtitles
- p for paragraphs
- strong for bold text (keywords)
- em for italics
- ul and li for bulleted lists
- ol and li for numbered lists
- Do NOT use markdown (asterisks, hashes, etc.), ONLY HTML

General rules
Do not include links, sources, external references or mentions of documents anywhere in the final datasheet.

Keyword rules
1. Short-tail keywords appear first of all in the title, summary, subtitles and the first paragraphs of each section.
2. Long-tail keywords are woven naturally into the detailed description, benefits, FAQs and use cases.
3. Every short-tail keyword appears at least once in the whole text, and every long-tail keyword at least once in the section where it fits best.
4. Avoid keyword stuffing: never repeat the same keyword more than twice in a row.
5. Use natural variations (plural/singular, synonyms) to keep the text fluent.

Rules for the product model
1. The product model is mentioned only in the title (once, usually at the end), in the first sentence of the detailed description right after the product name, and in the technical specifications.
2. It is not repeated in benefits, unique content sections, FAQs or the conclusion unless needed for clarity.

DATASHEET STRUCTURE (in HTML):

Main title (h1): SEO-optimised title with product name, category, function and a relevant keyword

Section 1 - Summary: h2 catchy subtitle, p short description with strong keywords.
Section 2 - Unique content 1: h2 custom title, p keyword-focused content.
Section 3 - Features and Benefits: h2 "Features and Benefits", p broad description (at least 1000 words in total), h3 "Main Features" with ul/li, h3 "Product Benefits" with p, h3 "Differentiators" with p.
Section 4 - Unique content 2: h2 custom title, p additional content.
Section 5 - How to use: h2 "How to use it?", p usage and installation recommendations.
Section 6 - FAQ: h2 "Frequently Asked Questions", then 10 questions, each h3 question and p answer.
Section 7 - Unique content 3: h2 custom title, p closing content.
Section 8 - Ideal use: h2 "Ideal Use", p ideal buyer profile.
Section 9 - Conclusion: h2 "Conclusion", p summary and highlights.
Section 10 - Call to action: h2 "Contact us", p invitation to get in touch."""

DATASHEET_OUTPUT_RULES = """IMPORTANT:
- Your answer must be ONLY the HTML of the datasheet
- Do NOT include backticks or any other code markers
- Start directly with the h1 title tag
- Use ONLY the HTML tags listed: h1, h2, h3, p, strong, em, ul, ol, li
- Every section must be clearly structured with the appropriate tags
- Important keywords must be wrapped in strong

Please generate the datasheet strictly following the structure and rules above."""
