import google.generativeai as genai
from loguru import logger
from app.core.config import get_settings
from app.schemas.enhance_schema import ContentType, EnhanceLength

# --- 1. Configuration ---

# Tried in order until one returns usable text
AI_MODELS = [
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-1.5-flash",
]

LENGTH_TOKENS = {
    EnhanceLength.SHORT: 150,   # ~50-75 words
    EnhanceLength.MEDIUM: 300,  # ~100-150 words
    EnhanceLength.LONG: 500,    # ~200-250 words
}

LENGTH_INSTRUCTIONS = {
    EnhanceLength.SHORT: "\n\nIMPORTANT: Keep your response very concise, under 75 words. Be brief but impactful.",
    EnhanceLength.MEDIUM: "\n\nKeep your response moderate in length, around 100-150 words.",
    EnhanceLength.LONG: "\n\nProvide a detailed, comprehensive response, up to 250 words.",
}

SYSTEM_PROMPTS = {
    ContentType.BIO: """You are an expert medical copywriter helping doctors write professional bios.
Enhance the provided text to be more professional, engaging, and patient-friendly.
Keep the tone warm but authoritative.
Maintain factual accuracy - don't add credentials or details not mentioned.
Return only the enhanced text, no explanations.""",

    ContentType.APPROACH: """You are helping a doctor articulate their approach to patient care.
Enhance the text to be warm, reassuring, and professional.
Focus on patient-centered language that builds trust.
Keep it genuine and not overly promotional.
Return only the enhanced text.""",

    ContentType.FIRST_VISIT: """You are helping a doctor write a helpful first visit guide for patients.
Make the content clear, informative, and reassuring for new patients.
Include practical information while maintaining a friendly tone.
Return only the enhanced text.""",

    ContentType.CONDITIONS: """You are helping a doctor describe conditions they treat.
Organize and enhance the list of conditions to be clear and comprehensive.
Use proper medical terminology while keeping it accessible to patients.
Format as a comma-separated list of conditions.
Return only the enhanced list.""",

    ContentType.PROCEDURES: """You are helping a doctor describe procedures they perform.
Enhance and organize the list of procedures professionally.
Use proper medical terminology while keeping it accessible.
Format as a comma-separated list of procedures.
Return only the enhanced list.""",
}


class AINotConfiguredError(Exception):
    pass


class AIUnavailableError(Exception):
    pass


def _configure() -> None:
    settings = get_settings()
    if not settings.GOOGLE_API_KEY:
        raise AINotConfiguredError("GOOGLE_API_KEY is not set")
    genai.configure(api_key=settings.GOOGLE_API_KEY)


# --- 2. Service function (sync) ---
def enhance_text(text: str, content_type: ContentType, length: EnhanceLength = EnhanceLength.MEDIUM) -> str:
    """
    Rewrites a profile section with Gemini.
    Falls through AI_MODELS on any error or empty answer; raises
    AIUnavailableError when none of them produced text.
    """
    _configure()

    system_instruction = SYSTEM_PROMPTS[content_type] + LENGTH_INSTRUCTIONS[length]
    generation_config = {
        "max_output_tokens": LENGTH_TOKENS[length],
        "temperature": 0.7,
    }
    user_prompt = f"Please enhance the following text:\n\n{text}"

    last_error = None
    for model_name in AI_MODELS:
        try:
            logger.info(f"Trying model: {model_name}")
            model = genai.GenerativeModel(
                model_name=model_name,
                system_instruction=system_instruction,
                generation_config=generation_config,
            )
            response = model.generate_content(user_prompt)
            enhanced = (response.text or "").strip()

            if not enhanced:
                logger.warning(f"Model {model_name} returned an empty response")
                last_error = "Empty response from model"
                continue

            logger.info(f"Success with model: {model_name}")
            return enhanced

        except Exception as e:
            logger.warning(f"Model {model_name} failed: {e}")
            last_error = str(e)

    logger.error(f"All AI models failed. Last error: {last_error}")
    raise AIUnavailableError(last_error)
