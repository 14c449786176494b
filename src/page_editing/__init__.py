"""Page edits: staged media promotion and concurrent edit detection."""

from src.page_editing.concurrency import detect_stale_write, save_if_unchanged
from src.page_editing.edit_orchestrator import (
    DEFAULT_TEMP_MEDIA_URL_TEMPLATE,
    EditOrchestrator,
    compile_temp_media_pattern,
)
from src.page_editing.models import PromotionResult, SaveOutcome, StaleWrite

__all__ = [
    'DEFAULT_TEMP_MEDIA_URL_TEMPLATE',
    'EditOrchestrator',
    'PromotionResult',
    'SaveOutcome',
    'StaleWrite',
    'compile_temp_media_pattern',
    'detect_stale_write',
    'save_if_unchanged',
]
