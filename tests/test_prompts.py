"""
Tests for prompt templates.
"""

import pytest

from catena.exceptions import TemplateRenderError
from catena.prompts import DEFAULT_STUFF_QA_TEMPLATE, PromptTemplate


class TestPromptTemplate:
    """Test variable discovery and rendering."""

    def test_input_variables_in_order(self):
        template = PromptTemplate("{context}\n\nQ: {question} ({context})")

        assert template.input_variables == ["context", "question"]

    def test_attribute_and_index_fields(self):
        template = PromptTemplate("{doc.title}: {items[0]}")

        assert template.input_variables == ["doc", "items"]

    def test_escaped_braces(self):
        template = PromptTemplate('Return {{"answer": ...}} for {question}')

        assert template.input_variables == ["question"]
        assert template.render({"question": "q"}) == 'Return {"answer": ...} for q'

    def test_render_ignores_extra_values(self):
        template = PromptTemplate("Q: {question}")

        assert template.render({"question": "why?", "other": 1}) == "Q: why?"

    def test_missing_variable(self):
        with pytest.raises(TemplateRenderError) as exc_info:
            PromptTemplate("Q: {question}").render({})

        assert exc_info.value.variable == "question"

    def test_bad_attribute(self):
        with pytest.raises(TemplateRenderError):
            PromptTemplate("{doc.title}").render({"doc": object()})

    def test_positional_fields_rejected(self):
        with pytest.raises(ValueError):
            PromptTemplate("{} and {0}")

    def test_malformed_template(self):
        with pytest.raises(ValueError, match="Invalid prompt template"):
            PromptTemplate("unclosed {question")

    def test_default_stuff_qa_template(self):
        template = PromptTemplate(DEFAULT_STUFF_QA_TEMPLATE)

        assert template.input_variables == ["context", "question"]
        rendered = template.render({"context": "Alpha", "question": "Why?"})
        assert rendered.endswith("Alpha\n\nQuestion: Why?\nHelpful Answer:")
