"""File classification through the Gemini API.

The model is asked for a JSON array of suggestions, one per file. Three prompt
shapes exist: metadata only (batch), metadata plus a content excerpt, and
metadata plus a free-text description typed by the user.
"""

import logging
import re
from dataclasses import dataclass

import google.generativeai as genai
from pydantic import TypeAdapter, ValidationError

from drive_organizer.data_models.classify import FileMetadata, Suggestion
from drive_organizer.errors import (
    BudgetExceededError,
    ClassificationError,
    ClassificationParseError,
)

logger = logging.getLogger(__name__)

MAX_CONTEXT_CHARS = 2000
FALLBACK_FOLDER = "Other"

SYSTEM_PROMPT = """You are a file organization assistant. Your task is to analyze files and suggest the best folder and name to organize them.

Rules:
1. Analyze the file name, type and metadata
2. Suggest an existing folder when it makes sense, or suggest creating a new one
3. Use clear, concise folder names in {language}
4. Common categories: Documents, Photos, Videos, Music, Projects, Work, Studies, Finance, Personal, Settings, Backups
5. Be specific when possible (e.g. "Work/Reports" instead of just "Work")
6. Suggest a better name when the file has a generic one (e.g. "document.pdf", "IMG_1234.jpg", "Untitled.docx")
7. Keep the original name if it is already descriptive
8. If unsure, set needs_content to true and use a low confidence
9. Always return a valid JSON array

ALWAYS answer with a JSON array of objects containing:
- filename: original file name
- suggested_folder: suggested folder (may be nested with /)
- suggested_name: suggested name (same as the original if it is already good)
- reason: short reason for the suggestion
- confidence: 0.0 to 1.0
- needs_content: true if the content is needed for a better classification"""

_suggestion_list = TypeAdapter(list[Suggestion])
_code_fence = re.compile(r"^```(?:json)?\s*|\s*```$")


def truncate(text: str, limit: int = MAX_CONTEXT_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "... [truncated]"


def _folders_block(existing_folders: list[str], header: str) -> str:
    if not existing_folders:
        return ""
    lines = [header]
    lines.extend(f"- {folder}" for folder in existing_folders)
    return "\n".join(lines) + "\n\n"


def build_classification_prompt(files: list[FileMetadata], existing_folders: list[str]) -> str:
    prompt = "Classify the following files and suggest the best folder for each one.\n\n"
    prompt += _folders_block(
        existing_folders, "Existing folders (prefer these when it makes sense):"
    )
    prompt += "Files to classify:\n"
    for i, f in enumerate(files, start=1):
        prompt += (
            f"{i}. Name: {f.name} | Type: {f.mime_type} | Size: {f.size} bytes"
            f" | Created: {f.created_time}\n"
        )
    prompt += "\nReturn a JSON array with the classification of each file."
    return prompt


def _single_file_header(file: FileMetadata) -> str:
    return f"File: {file.name}\nType: {file.mime_type}\nSize: {file.size} bytes\n\n"


def build_content_prompt(file: FileMetadata, content: str, existing_folders: list[str]) -> str:
    prompt = "Classify the following file based on its name, metadata AND content.\n\n"
    prompt += _folders_block(existing_folders, "Existing folders:")
    prompt += _single_file_header(file)
    prompt += f"Content (first characters):\n---\n{truncate(content)}\n---\n"
    prompt += "\nReturn a JSON array with the classification."
    return prompt


def build_description_prompt(
    file: FileMetadata, description: str, existing_folders: list[str]
) -> str:
    prompt = "Classify the following file based on its name, metadata AND the user's description.\n\n"
    prompt += _folders_block(existing_folders, "Existing folders:")
    prompt += _single_file_header(file)
    prompt += f"User description:\n---\n{truncate(description)}\n---\n\n"
    prompt += "Based on this description, suggest the best folder and name for the file.\n"
    prompt += "\nReturn a JSON array with the classification."
    return prompt


def parse_suggestions(text: str) -> list[Suggestion]:
    """Parse a JSON array of suggestions, falling back to a single object."""
    raw = _code_fence.sub("", (text or "").strip())
    try:
        return _suggestion_list.validate_json(raw)
    except ValidationError as array_error:
        try:
            return [Suggestion.model_validate_json(raw)]
        except ValidationError:
            raise ClassificationParseError(
                f"Could not parse AI response as JSON: {array_error.errors()[0]['msg']}",
                raw,
            ) from array_error


def fallback_suggestion(file: FileMetadata) -> Suggestion:
    return Suggestion(
        filename=file.name,
        suggested_folder=FALLBACK_FOLDER,
        reason="Could not classify",
        confidence=0.0,
    )


@dataclass
class UsageTracker:
    """Estimated spend from the token counts the API reports."""

    input_price_per_million: float = 0.10
    output_price_per_million: float = 0.40
    max_cost: float | None = None
    prompt_tokens: int = 0
    output_tokens: int = 0

    @property
    def cost(self) -> float:
        return (
            self.prompt_tokens * self.input_price_per_million
            + self.output_tokens * self.output_price_per_million
        ) / 1_000_000

    def record(self, response) -> None:
        usage = getattr(response, "usage_metadata", None)
        if usage is None:
            return
        self.prompt_tokens += getattr(usage, "prompt_token_count", 0) or 0
        self.output_tokens += getattr(usage, "candidates_token_count", 0) or 0

    def check(self) -> None:
        if self.max_cost is not None and self.cost >= self.max_cost:
            raise BudgetExceededError(self.cost, self.max_cost)


class GeminiClassifier:
    """Classification collaborator; ``model`` is a ``genai.GenerativeModel``."""

    def __init__(self, model, usage: UsageTracker | None = None):
        self.model = model
        self.usage = usage if usage is not None else UsageTracker()

    @classmethod
    def from_api_key(
        cls,
        api_key: str,
        model_name: str,
        language: str = "English",
        usage: UsageTracker | None = None,
    ) -> "GeminiClassifier":
        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(
            model_name,
            system_instruction=SYSTEM_PROMPT.format(language=language),
            generation_config=genai.GenerationConfig(
                temperature=0.2,
                top_p=0.8,
                max_output_tokens=4096,
                response_mime_type="application/json",
            ),
        )
        logger.info(f"Gemini classifier initialized with model {model_name}")
        return cls(model, usage)

    def _generate(self, prompt: str) -> list[Suggestion]:
        self.usage.check()
        try:
            response = self.model.generate_content(prompt)
            self.usage.record(response)
            text = response.text
        except ClassificationError:
            raise
        except Exception as e:
            raise ClassificationError(f"AI request failed: {e}") from e
        return parse_suggestions(text)

    def classify_batch(
        self, files: list[FileMetadata], existing_folders: list[str]
    ) -> list[Suggestion]:
        logger.debug(f"Sending classification prompt for {len(files)} files")
        return self._generate(build_classification_prompt(files, existing_folders))

    def classify_single(self, file: FileMetadata, existing_folders: list[str]) -> Suggestion:
        suggestions = self.classify_batch([file], existing_folders)
        return suggestions[0] if suggestions else fallback_suggestion(file)

    def classify_with_content(
        self, file: FileMetadata, content: str, existing_folders: list[str]
    ) -> Suggestion:
        suggestions = self._generate(build_content_prompt(file, content, existing_folders))
        return suggestions[0] if suggestions else fallback_suggestion(file)

    def classify_with_description(
        self, file: FileMetadata, description: str, existing_folders: list[str]
    ) -> Suggestion:
        suggestions = self._generate(
            build_description_prompt(file, description, existing_folders)
        )
        return suggestions[0] if suggestions else fallback_suggestion(file)
