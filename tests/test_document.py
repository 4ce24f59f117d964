"""
Tests for format detection and parsing.
"""

import datetime

import pytest

from traefik_doctor.document import FormatKind, classify, detect_syntax, normalize, parse_payload
from traefik_doctor.source import RawPayload


def payload(text, source="http://pangolin/api", content_type=None):
    return RawPayload(content=text.encode(), source=source, content_type=content_type)


class TestParseJson:
    """Test JSON classification."""

    def test_parsed_object(self):
        doc = parse_payload(payload('{"http": {"routers": {}, "services": {}}}'))
        assert doc.kind == FormatKind.PARSED_OBJECT
        assert doc.http == {"routers": {}, "services": {}}

    def test_whitespace_only_is_empty(self):
        doc = parse_payload(payload("  \n\t "))
        assert doc.kind == FormatKind.EMPTY

    def test_invalid_json(self):
        """Test parse failure is classified, not raised."""
        doc = parse_payload(payload("http:\n  routers: {}\n"))
        assert doc.kind == FormatKind.NON_PARSEABLE
        assert doc.error

    def test_array_top_level(self):
        doc = parse_payload(payload("[1, 2, 3]"))
        assert doc.kind == FormatKind.PARSED_NON_OBJECT

    def test_json_null_is_non_object(self):
        doc = parse_payload(payload("null"))
        assert doc.kind == FormatKind.PARSED_NON_OBJECT

    def test_missing_http(self):
        doc = parse_payload(payload('{"tcp": {}}'))
        assert doc.kind == FormatKind.MISSING_HTTP
        assert doc.http == {}

    def test_http_not_a_mapping(self):
        doc = parse_payload(payload('{"http": []}'))
        assert doc.kind == FormatKind.MISSING_HTTP


class TestParseYaml:
    """Test YAML classification."""

    def test_yaml_object(self):
        doc = parse_payload(payload("http:\n  routers: {}\n"), syntax="yaml")
        assert doc.kind == FormatKind.PARSED_OBJECT
        assert doc.syntax == "yaml"

    def test_yaml_parse_error(self):
        doc = parse_payload(payload("{ invalid: yaml:: content"), syntax="yaml")
        assert doc.kind == FormatKind.NON_PARSEABLE
        assert doc.error

    def test_comment_only_yaml_is_empty(self):
        doc = parse_payload(payload("# nothing here\n"), syntax="yaml")
        assert doc.kind == FormatKind.EMPTY

    def test_yaml_scalar_is_non_object(self):
        doc = parse_payload(payload("just a string"), syntax="yaml")
        assert doc.kind == FormatKind.PARSED_NON_OBJECT

    def test_unsupported_syntax(self):
        with pytest.raises(ValueError, match="Unsupported syntax"):
            parse_payload(payload("{}"), syntax="toml")


class TestDetectSyntax:
    """Test choosing the parser."""

    def test_yaml_file_suffix(self):
        assert detect_syntax(payload("", source="/root/config/traefik/dynamic_config.yml")) == "yaml"

    def test_yaml_content_type(self):
        assert detect_syntax(payload("", content_type="application/x-yaml")) == "yaml"

    def test_json_by_default(self):
        assert detect_syntax(payload("", content_type="application/json")) == "json"

    def test_auto_parses_yaml_file(self):
        doc = parse_payload(payload("http: {}\n", source="dynamic.yaml"), syntax="auto")
        assert doc.kind == FormatKind.PARSED_OBJECT


class TestNormalize:
    """Test tree normalization."""

    def test_keys_become_strings(self):
        assert normalize({1: {True: "x"}}) == {"1": {"True": "x"}}

    def test_dates_become_iso_text(self):
        assert normalize({"d": datetime.date(2026, 1, 16)}) == {"d": "2026-01-16"}

    def test_tuples_become_lists(self):
        assert normalize((1, "a", None)) == [1, "a", None]

    def test_deep_nesting(self):
        """Test nesting far past the interpreter recursion limit."""
        depth = 50000
        tree = leaf = []
        for _ in range(depth):
            child = []
            leaf.append(child)
            leaf = child

        result = normalize({"x": tree})

        levels = 0
        node = result["x"]
        while node:
            node = node[0]
            levels += 1
        assert levels == depth

    def test_shared_and_self_referencing_nodes(self):
        """Test aliased containers are converted once and cycles terminate."""
        shared = {"main": "example.com"}
        loop = []
        loop.append(loop)

        result = normalize({"a": shared, "b": shared, "loop": loop})

        assert result["a"] is result["b"]
        assert result["loop"][0] is result["loop"]


class TestPathologicalInput:
    """Test inputs that are legal text but hostile to recursive parsers."""

    def test_deep_json_is_non_parseable(self):
        depth = 100000
        doc = parse_payload(payload("[" * depth + "]" * depth))

        assert doc.kind == FormatKind.NON_PARSEABLE
        assert doc.error == "document is nested too deeply to parse"

    def test_deep_yaml_is_non_parseable(self):
        depth = 20000
        doc = parse_payload(payload("[" * depth + "]" * depth), syntax="yaml")

        assert doc.kind == FormatKind.NON_PARSEABLE
        assert "nested too deeply" in doc.error

    def test_deep_value_inside_object_is_classified(self):
        """Test a deep tree handed to the classifier directly."""
        deep = {}
        node = deep
        for _ in range(20000):
            node["next"] = {}
            node = node["next"]

        doc = classify({"http": {"routers": {}, "extra": deep}}, "json")

        assert doc.kind == FormatKind.PARSED_OBJECT
        assert doc.http["routers"] == {}

    def test_yaml_self_alias(self):
        """Test a list that contains itself through an anchor."""
        doc = parse_payload(payload(
            "http:\n"
            "  routers:\n"
            "    r1:\n"
            "      rule: Host(`a.com`)\n"
            "      tls:\n"
            "        domains: &loop [*loop]\n"
        ), syntax="yaml")

        domains = doc.http["routers"]["r1"]["tls"]["domains"]
        assert doc.kind == FormatKind.PARSED_OBJECT
        assert domains[0] is domains
