"""Tests for wren.routing.params: route converters and annotation coercion."""

import pytest

from wren.routing.params import CONVERTERS, coerce, convert_param


class TestConvertParam:
    def test_registered_converters(self) -> None:
        assert set(CONVERTERS) == {"str", "int", "float", "path"}

    def test_int(self) -> None:
        assert convert_param("42", "int") == 42

    def test_float(self) -> None:
        assert convert_param("3.5", "float") == pytest.approx(3.5)

    def test_path_keeps_slashes(self) -> None:
        assert convert_param("docs/api/v2", "path") == "docs/api/v2"

    def test_invalid_int_raises(self) -> None:
        with pytest.raises(ValueError):
            convert_param("abc", "int")

    def test_unknown_converter_raises(self) -> None:
        with pytest.raises(KeyError):
            convert_param("value", "uuid")


class TestCoerce:
    def test_int_annotation(self) -> None:
        assert coerce("7", int) == 7

    def test_float_annotation(self) -> None:
        assert coerce("2.5", float) == 2.5

    def test_non_string_untouched(self) -> None:
        assert coerce(7, float) == 7
        assert isinstance(coerce(7, float), int)

    @pytest.mark.parametrize("annotation", [str, list, None])
    def test_other_annotations_pass_through(self, annotation: object) -> None:
        assert coerce("7", annotation) == "7"

    def test_unparseable_raises(self) -> None:
        with pytest.raises(ValueError):
            coerce("seven", int)
