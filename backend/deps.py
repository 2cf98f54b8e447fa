from config import ANTHROPIC_API_KEY, LLM_MODEL, RESEND_API_KEY
from database import Database, create_supabase_client
from services.llm import AnthropicLLM
from services.email_sender import ResendMailer


def get_db() -> Database:
    return Database(create_supabase_client())


def get_llm() -> AnthropicLLM:
    return AnthropicLLM(api_key=ANTHROPIC_API_KEY, model=LLM_MODEL)


def get_mailer() -> ResendMailer:
    return ResendMailer(api_key=RESEND_API_KEY)
