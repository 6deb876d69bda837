"""Prompt templates rendered from chain values."""

import string
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from .exceptions import TemplateRenderError


DEFAULT_STUFF_QA_TEMPLATE = """Use the following pieces of context to answer the question at the end. If you don't know the answer, just say that you don't know, don't try to make up an answer.

{context}

Question: {question}
Helpful Answer:"""


class BasePromptTemplate(ABC):
    """Base class for all prompt templates."""

    @property
    @abstractmethod
    def input_variables(self) -> List[str]:
        """Names of the values the template needs."""
        pass

    @abstractmethod
    def render(self, values: Dict[str, Any]) -> str:
        """Render the template against the given values."""
        pass


class PromptTemplate(BasePromptTemplate):
    """Template using ``str.format`` replacement fields, e.g. ``"Q: {question}"``."""

    def __init__(self, template: str):
        self.template = template
        self._variables = self._parse_variables(template)

    @staticmethod
    def _parse_variables(template: str) -> List[str]:
        variables: List[str] = []
        try:
            parsed = list(string.Formatter().parse(template))
        except ValueError as e:
            raise ValueError(f"Invalid prompt template: {e}") from e

        for _, field_name, _, _ in parsed:
            if field_name is None:
                continue
            # "{doc.title}" and "{items[0]}" both need the "doc" / "items" value
            name = field_name.split(".")[0].split("[")[0]
            if not name or name.isdigit():
                raise ValueError(f"Positional fields are not supported: {{{field_name}}}")
            if name not in variables:
                variables.append(name)
        return variables

    @property
    def input_variables(self) -> List[str]:
        return list(self._variables)

    def render(self, values: Dict[str, Any]) -> str:
        for name in self._variables:
            if name not in values:
                raise TemplateRenderError(name)

        try:
            return self.template.format(**{name: values[name] for name in self._variables})
        except (KeyError, AttributeError, IndexError) as e:
            raise TemplateRenderError(str(e), f"cannot render template: {e}") from e

    def __repr__(self) -> str:
        return f"PromptTemplate(input_variables={self._variables!r})"
