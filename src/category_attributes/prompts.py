"""Prompt templates for subcategory attribute generation."""

from __future__ import annotations

SUBCATEGORY_PLACEHOLDER = "{SubcategoryName}"

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert in ecommerce product data. "
    "Given a product subcategory name, you must return the three most important, "
    "commonly used product attributes for that subcategory. "
    "Return attributes that are useful for faceted navigation and product comparison."
)

DEFAULT_USER_PROMPT_TEMPLATE = """\
Subcategory name: "{SubcategoryName}"

Return a JSON object in the following exact shape:

{
  "attributes": [
    "Attribute 1",
    "Attribute 2",
    "Attribute 3"
  ]
}

Rules:
- Always return exactly three attribute names.
- Attribute names must be concise (max 3 words), in English, and human-readable.
- Do not include explanations, comments, or additional fields.
"""


def render_user_prompt(template: str, subcategory_name: str) -> str:
    """Substitute the subcategory placeholder.

    Plain replacement rather than ``str.format`` keeps the literal JSON braces
    in the template intact.
    """

    return template.replace(SUBCATEGORY_PLACEHOLDER, subcategory_name)
