"""
Prompt engine.

Holds an in-memory catalog of prompt templates and renders the prompt that
accompanies each question:
1. A non-empty custom override prompt is used verbatim.
2. Otherwise the selected template is filled from the context.
3. If the template is missing or rendering fails, the raw query is used.
"""

import logging
import re
import secrets
import string
import time
from collections.abc import Iterable

from ragconsole.core.errors import EmptyPromptError, InvalidTemplateError
from ragconsole.models.chat import Message, SearchResult, utcnow
from ragconsole.models.prompt import (
    PromptContext,
    PromptTemplate,
    PromptValidation,
    TemplateCategory,
)

logger = logging.getLogger(__name__)

NO_RESULTS = "No search results were found."
NO_HISTORY = "No previous conversation."
HISTORY_WINDOW = 5

DEFAULT_TEMPLATE_ID = "general-qa"

_PLACEHOLDER = re.compile(r"\{([^{}]*)\}")

_BUILTIN_TEMPLATES = [
    {
        "id": "general-qa",
        "name": "General Q&A",
        "description": "Plain question answering.",
        "template": (
            "User question: {userQuery}\n\n"
            "Give an accurate and helpful answer to the question above."
        ),
        "variables": ["userQuery"],
        "category": "general",
    },
    {
        "id": "rag-enhanced",
        "name": "RAG Enhanced",
        "description": "Answer grounded in the retrieved passages.",
        "template": (
            "Answer the user's question using the search results below.\n\n"
            "Search results:\n{searchResults}\n\n"
            "User question: {userQuery}\n\n"
            "Give an accurate, detailed answer based on the search results. "
            "Say explicitly when something is not covered by them."
        ),
        "variables": ["userQuery", "searchResults"],
        "category": "rag",
    },
    {
        "id": "analysis",
        "name": "Data Analysis",
        "description": "Structured analysis with insights and recommendations.",
        "template": (
            "Analyse the following data and derive insights.\n\n"
            "Data: {data}\n"
            "Analysis request: {userQuery}\n\n"
            "Present the analysis in a structured form, including key insights "
            "and recommendations."
        ),
        "variables": ["userQuery", "data"],
        "category": "analysis",
    },
]


def template_placeholders(text: str) -> list[str]:
    """Placeholder names in ``text``, in order of first appearance."""
    return list(dict.fromkeys(match.group(1) for match in _PLACEHOLDER.finditer(text)))


def format_search_results(results: Iterable[SearchResult]) -> str:
    blocks = [
        f"{index}. {result.content}\n   score: {result.score:.3f}\n   source: {result.source}"
        for index, result in enumerate(results, start=1)
    ]
    return "\n\n".join(blocks) if blocks else NO_RESULTS


def format_history(history: list[Message]) -> str:
    recent = history[-HISTORY_WINDOW:]
    if not recent:
        return NO_HISTORY
    return "\n".join(f"{message.role}: {message.content}" for message in recent)


def _generate_template_id() -> str:
    suffix = "".join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(9))
    return f"template_{int(time.time() * 1000)}_{suffix}"


def _check_declared_variables(template: str, variables: list[str]) -> None:
    if not template.strip():
        raise EmptyPromptError("Template text is empty.")
    missing = [name for name in variables if name not in template_placeholders(template)]
    if missing:
        raise InvalidTemplateError(
            f"Declared variables not present in template: {', '.join(missing)}"
        )


class PromptEngine:
    """Template catalog plus prompt rendering and validation."""

    def __init__(self, templates: Iterable[PromptTemplate] | None = None) -> None:
        self._templates: dict[str, PromptTemplate] = {}
        seed = templates if templates is not None else (
            PromptTemplate(**fields) for fields in _BUILTIN_TEMPLATES
        )
        for template in seed:
            self._templates[template.id] = template
        self.selected_template_id = DEFAULT_TEMPLATE_ID
        self.custom_prompt = ""

    # -- catalog ---------------------------------------------------------

    def get_template(self, template_id: str) -> PromptTemplate | None:
        return self._templates.get(template_id)

    def list_templates(self) -> list[PromptTemplate]:
        return list(self._templates.values())

    def list_by_category(self, category: TemplateCategory) -> list[PromptTemplate]:
        return [t for t in self._templates.values() if t.category == category]

    def select_template(self, template_id: str) -> None:
        if template_id not in self._templates:
            logger.warning("Selected unknown template %s; prompts will fall back to the raw query", template_id)
        self.selected_template_id = template_id

    def add_template(
        self,
        name: str,
        template: str,
        variables: list[str],
        *,
        description: str = "",
        category: TemplateCategory = "general",
        version: str = "1.0.0",
    ) -> PromptTemplate:
        """
        Add a template under a newly generated id.

        Raises:
            EmptyPromptError: ``template`` is blank.
            InvalidTemplateError: A declared variable has no placeholder.
        """
        _check_declared_variables(template, variables)
        created = PromptTemplate(
            id=_generate_template_id(),
            name=name,
            description=description,
            template=template,
            variables=variables,
            version=version,
            category=category,
        )
        self._templates[created.id] = created
        logger.info("Added prompt template %s (%s)", created.id, name)
        return created

    def update_template(self, template_id: str, **updates) -> bool:
        """Apply ``updates`` to an existing template; the id cannot change."""
        current = self._templates.get(template_id)
        if current is None:
            return False

        updates.pop("id", None)
        updates.pop("created_at", None)
        merged = {**current.model_dump(), **updates, "updated_at": utcnow()}
        _check_declared_variables(merged["template"], merged["variables"])
        self._templates[template_id] = PromptTemplate.model_validate(merged)
        return True

    def delete_template(self, template_id: str) -> bool:
        if template_id not in self._templates:
            return False
        if len(self._templates) == 1:
            logger.warning("Refusing to delete %s: it is the last remaining template", template_id)
            return False
        del self._templates[template_id]
        logger.info("Deleted prompt template %s", template_id)
        return True

    # -- rendering -------------------------------------------------------

    def render_prompt(self, context: PromptContext) -> str:
        """Render the prompt for ``context``. Never raises."""
        if self.custom_prompt.strip():
            return self.custom_prompt

        template = self._templates.get(self.selected_template_id)
        if template is None:
            logger.warning("Template %s not found; using raw query", self.selected_template_id)
            return context.user_query

        try:
            return self.render_template(template, context)
        except Exception:
            logger.exception("Prompt rendering failed for template %s", template.id)
            return context.user_query

    def render_template(self, template: PromptTemplate, context: PromptContext) -> str:
        declared = set(template.variables)
        values: dict[str, str] = {}

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if name not in declared:
                return match.group(0)
            if name not in values:
                values[name] = self._variable_value(name, context)
            return values[name]

        return _PLACEHOLDER.sub(substitute, template.template)

    @staticmethod
    def _variable_value(name: str, context: PromptContext) -> str:
        if name == "userQuery":
            return context.user_query
        if name == "searchResults":
            return format_search_results(context.search_results)
        if name == "conversationHistory":
            return format_history(context.conversation_history)
        return context.metadata.get(name, "")

    # -- validation ------------------------------------------------------

    @staticmethod
    def validate_prompt(text: str) -> PromptValidation:
        """Check a user-supplied prompt. Unknown variable names are allowed."""
        errors = []
        if not text.strip():
            errors.append("Prompt is empty.")
        if any(not name.strip() for name in template_placeholders(text)):
            errors.append("Prompt contains a placeholder with an empty variable name.")
        return PromptValidation(valid=not errors, errors=errors)
