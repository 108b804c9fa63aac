from vulnreach.clients.osv_client import Vulnerability
from vulnreach.reachability.models import SymbolSource
from vulnreach.reachability.symbols import (
    build_symbol_set,
    extract_mentioned_symbols,
    extract_possible_symbols,
    is_symbol_like,
)


class TestExtractMentionedSymbols:
    def test_call_parentheses(self):
        assert extract_mentioned_symbols("Calling parse() or Load () is unsafe") == [
            "Load",
            "parse",
        ]

    def test_backticks(self):
        assert extract_mentioned_symbols("The `defaultsDeep` helper") == ["defaultsDeep"]

    def test_function_word_is_case_insensitive(self):
        assert extract_mentioned_symbols("the zipObjectDeep Function allows") == [
            "zipObjectDeep"
        ]

    def test_quotes(self):
        assert extract_mentioned_symbols("""keys like "setWith" and 'unset'""") == [
            "setWith",
            "unset",
        ]

    def test_stop_words_are_discarded(self):
        text = "The vulnerable function, a function, this function and `true`"
        assert extract_mentioned_symbols(text) == []

    def test_snake_case_slugs_are_discarded(self):
        assert extract_mentioned_symbols("see `allow_redirects` and `Load_File`") == [
            "Load_File"
        ]

    def test_empty_text(self):
        assert extract_mentioned_symbols("") == []

    def test_results_are_sorted_and_unique(self):
        text = "`merge` then merge() then 'merge' and `assign`"
        assert extract_mentioned_symbols(text) == ["assign", "merge"]


class TestIsSymbolLike:
    def test_rejects_urls_and_files(self):
        for token in ["https", "readme", "github.com", "docs.rs", "config.txt", "e.g"]:
            assert not is_symbol_like(token)

    def test_accepts_identifiers(self):
        for token in ["merge", "ParseAcceptLanguage", "Load_File"]:
            assert is_symbol_like(token)


class TestExtractPossibleSymbols:
    def test_merge_without_package_name(self):
        symbols = extract_possible_symbols("lodash", "calls the `merge()` function", "")
        assert "merge" in symbols
        assert "lodash" not in symbols

    def test_package_name_excluded_case_insensitively(self):
        symbols = extract_possible_symbols("Lodash", "`lodash` and `template`", None)
        assert symbols == ["template"]

    def test_summary_and_details_both_mined(self):
        symbols = extract_possible_symbols("pkg", "uses `alpha`", "and `beta`")
        assert symbols == ["alpha", "beta"]


class TestBuildSymbolSet:
    def _advisory(self, **kwargs):
        return Vulnerability(id="GHSA-test", **kwargs)

    def test_unions_structured_and_mined(self):
        advisory = self._advisory(
            summary="Denial of service in `MatchStrings`",
            affected=[
                {
                    "ecosystem_specific": {
                        "imports": [
                            {"path": "golang.org/x/text/language", "symbols": ["ParseAcceptLanguage"]}
                        ]
                    }
                }
            ],
        )
        symbols = build_symbol_set(advisory, "golang.org/x/text")

        assert symbols.symbols == {"parseacceptlanguage", "matchstrings"}
        assert symbols.structured() == {"parseacceptlanguage"}
        assert symbols.mined() == {"matchstrings"}

    def test_provenance_merges(self):
        advisory = self._advisory(
            summary="`Parse` is affected",
            affected=[{"ecosystem_specific": {"imports": [{"path": "p", "symbols": ["Parse"]}]}}],
        )
        symbols = build_symbol_set(advisory, "p")
        assert symbols.sources == {"parse": [SymbolSource.STRUCTURED, SymbolSource.TEXT]}

    def test_dotted_structured_symbol_adds_method(self):
        advisory = self._advisory(
            affected=[
                {"ecosystem_specific": {"imports": [{"path": "p", "symbols": ["Decoder.Decode"]}]}}
            ]
        )
        symbols = build_symbol_set(advisory, "p")
        assert symbols.symbols == {"decoder.decode", "decode"}
        assert "Decode" in symbols

    def test_package_name_never_included(self):
        advisory = self._advisory(
            summary="`yaml` load issue",
            affected=[{"ecosystem_specific": {"imports": [{"path": "yaml", "symbols": ["yaml"]}]}}],
        )
        symbols = build_symbol_set(advisory, "yaml")
        assert "yaml" not in symbols

    def test_empty_advisory(self):
        symbols = build_symbol_set(self._advisory(summary="Something bad"), "pkg")
        assert symbols.is_empty()
        assert len(symbols) == 0
