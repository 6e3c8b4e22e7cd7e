"""System instructions and response schemas sent with text and analysis calls."""

IMPROVE_PROMPT_INSTRUCTION = (
    "You are a prompt engineering expert. Your task is to refine the user's prompt "
    "for an AI image generation model. Rewrite the prompt to be clearer, more concise, "
    "and more effective for the AI, ensuring it directly corresponds to the user's intent. "
    "Do not add new elements or concepts not present in the original prompt. "
    "The goal is to improve the AI's understanding and keep the original vision consistent. "
    "Return only the rewritten prompt, with no preamble or explanation."
)

ANALYSIS_INSTRUCTION_TEMPLATE = """You are a helpful and creative landscape design assistant.
Analyze the user's garden photo and return a JSON object written in this language: {language}.
The object has two fields:
1. "description": an objective description of the key elements and zones in the image
   (terrace material, fence type, existing plants, lawn condition). Keep it under 500 characters.
2. "suggestions": a list of 3-4 creative, actionable improvements, each a complete sentence
   that could be used directly as an edit prompt, inspired by the elements in the description.

Example output for a simple garden when the language is 'en':
{{
  "description": "A small backyard with a worn-out lawn and a simple wooden fence. A plastic children's slide stands in the corner.",
  "suggestions": [
    "Replace the worn-out lawn with lush, new sod and add a stone pathway leading to the back.",
    "Paint the wooden fence a modern charcoal gray and plant climbing jasmine along its base.",
    "Create a dedicated play area with a new sandbox and soft rubber mulch where the slide is.",
    "Introduce a flower bed with colorful, low-maintenance perennials along the fence line."
  ]
}}"""

ANALYSIS_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "description": {"type": "STRING"},
        "suggestions": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
        },
    },
    "required": ["description", "suggestions"],
}

# Masks are always sent as PNG regardless of the photo's own type
MASK_MIME_TYPE = "image/png"


def analysis_instruction(language: str) -> str:
    return ANALYSIS_INSTRUCTION_TEMPLATE.format(language=language)
