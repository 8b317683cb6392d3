"""
Tests for renderable content type classification.
"""

import pytest

from react_annotation.parsing.type_classifier import RenderableTypeClassifier, split_top_level


class TestRenderableTypeClassifier:
    def setup_method(self):
        self.classifier = RenderableTypeClassifier()

    @pytest.mark.parametrize(
        "type_text",
        [
            "React.ReactNode",
            "ReactNode",
            "JSX.Element",
            "ReactNode | null",
            "string | React.ReactElement",
            "(React.ReactNode)",
            "ReactElement[]",
            "readonly ReactNode[]",
            "Array<JSX.Element>",
            "ReadonlyArray<ReactNode>",
            "React.ReactElement<ButtonProps>",
            "(() => void) | ReactNode",
        ],
    )
    def test_renderable_types(self, type_text):
        assert self.classifier.accepts_renderable(type_text)

    @pytest.mark.parametrize(
        "type_text",
        [
            "string",
            "number | boolean",
            "() => ReactNode",
            "Map<string, ReactNode>",
            "Array<string>",
            "ButtonProps",
            "",
            None,
        ],
    )
    def test_plain_data_types(self, type_text):
        assert not self.classifier.accepts_renderable(type_text)

    def test_custom_renderable_types(self):
        classifier = RenderableTypeClassifier({"Slot"})

        assert classifier.accepts_renderable("Slot | undefined")
        assert not classifier.accepts_renderable("ReactNode")


class TestSplitTopLevel:
    def test_ignores_nested_separators(self):
        assert split_top_level("Map<string, A | B> | null", "|") == ["Map<string, A | B>", "null"]

    def test_arrow_does_not_close_brackets(self):
        assert split_top_level("(a: A) => B | C", "|") == ["(a: A) => B", "C"]
