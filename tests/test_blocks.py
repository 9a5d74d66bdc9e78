from collection_agent.parser.blocks import extract_block, find_block_labels, iter_key_values, read_fields


class TestExtractBlock:
    def test_simple_block(self):
        assert extract_block("meta {\n  name: A\n}\n", "meta") == "\n  name: A\n"

    def test_whitespace_between_label_and_brace(self):
        assert extract_block("meta\n\t {x}", "meta") == "x"

    def test_nested_braces(self):
        text = 'body:json {\n  {"a": {"b": 1}}\n}\ntests {\n}\n'
        assert extract_block(text, "body:json") == '\n  {"a": {"b": 1}}\n'

    def test_missing_label(self):
        assert extract_block("meta {\n}\n", "headers") is None

    def test_unterminated_block_is_absent(self):
        assert extract_block("headers {\n  A: 1\n", "headers") is None

    def test_first_duplicate_wins(self):
        text = "headers {\n  A: 1\n}\nheaders {\n  B: 2\n}\n"
        assert extract_block(text, "headers") == "\n  A: 1\n"

    def test_label_must_not_be_word_suffix(self):
        assert extract_block("target {\n x\n}", "get") is None

    def test_qualified_label_not_matched_by_prefix(self):
        text = "vars:secret {\n  a: 1\n}\nvars {\n  b: 2\n}\n"
        assert extract_block(text, "vars") == "\n  b: 2\n"


class TestFindBlockLabels:
    def test_counts_every_occurrence(self):
        text = "get {\n}\nget {\n}\n"
        assert len(find_block_labels(text, "get")) == 2


class TestKeyValues:
    def test_splits_on_first_colon(self):
        pairs = list(iter_key_values("  url: https://example.test:8080/x\n"))
        assert pairs == [("url", "https://example.test:8080/x")]

    def test_read_fields_first_match_wins(self):
        block = "name: First\nname: Second\nseq: 3\nother: x\n"
        assert read_fields(block, ("name", "seq")) == {"name": "First", "seq": "3"}

    def test_missing_key_is_absent(self):
        assert "type" not in read_fields("name: A\n", ("name", "type"))


class TestQuotedBraces:
    def test_closing_brace_inside_double_quotes(self):
        text = 'body:json {\n  {"msg": "use } carefully"}\n}\n'
        assert extract_block(text, "body:json").strip() == '{"msg": "use } carefully"}'

    def test_braces_inside_single_quotes(self):
        text = "tests {\n  test('has }', function() {\n    expect(res.body).to.include('{');\n  });\n}\nmeta {\n}\n"
        block = extract_block(text, "tests")
        assert block.rstrip().endswith("});")
        assert "include('{')" in block

    def test_escaped_quote_inside_string(self):
        text = 'body:json {\n  {"a": "say \\"}\\" twice"}\n}\n'
        assert extract_block(text, "body:json").strip() == '{"a": "say \\"}\\" twice"}'

    def test_apostrophe_in_prose_is_not_a_string(self):
        text = "body:text {\n  it's {fine}\n}\ndocs {\n  x\n}\n"
        assert extract_block(text, "body:text") == "\n  it's {fine}\n"

    def test_unclosed_quote_does_not_span_lines(self):
        text = 'body:text {\n  "open\n}\n'
        assert extract_block(text, "body:text") == '\n  "open\n'
