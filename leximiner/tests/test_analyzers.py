import pytest
from collections import Counter

from leximiner.exceptions import ConfigurationError, PatternError


class TestDataClasses:
    def test_document_metadata_is_read_only(self):
        from leximiner.analyzers.base import Document

        doc = Document(doc_id="d1", text="hello", metadata={"year": 2020})
        assert doc.metadata["year"] == 2020
        with pytest.raises(TypeError):
            doc.metadata["year"] = 2021

    def test_document_pickles(self):
        import pickle
        from leximiner.analyzers.base import Document

        doc = Document(doc_id="d1", text=b"bytes", metadata={"party": "x"})
        restored = pickle.loads(pickle.dumps(doc))
        assert restored.doc_id == "d1"
        assert restored.text == b"bytes"
        assert dict(restored.metadata) == {"party": "x"}

    def test_document_score_matched(self):
        from leximiner.analyzers.base import DocumentScore

        row = DocumentScore("d1", {"positive": 2, "negative": 1}, n_tokens=10, n_terms=6)
        assert row.matched == 3
        assert row.metadata == {}
        assert row.warnings == []

    def test_batch_result_get(self):
        from leximiner.analyzers.base import BatchResult, DocumentScore

        result = BatchResult(rows=[DocumentScore("a", {}, 0, 0)])
        assert len(result) == 1
        assert result.get("a").doc_id == "a"
        assert result.get("missing") is None


class TestTokenizer:
    def test_tokenize_sentence(self):
        from leximiner.analyzers.tokenizer import Tokenizer

        tokens = Tokenizer().tokenize(
            "The food was great, but I did not like the service."
        )
        assert tokens == [
            "the", "food", "was", "great", "but", "i",
            "did", "not", "like", "the", "service",
        ]

    def test_empty_text_returns_no_tokens(self):
        from leximiner.analyzers.tokenizer import Tokenizer

        tok = Tokenizer()
        assert tok.tokenize("") == []
        assert tok.tokenize("   \n\t") == []

    def test_punctuation_kept_when_requested(self):
        from leximiner.analyzers.tokenizer import Tokenizer, TokenizerConfig

        tok = Tokenizer(TokenizerConfig(remove_punctuation=False))
        assert tok.tokenize("Hello, world!") == ["hello", ",", "world", "!"]

    def test_numbers_kept_by_default(self):
        from leximiner.analyzers.tokenizer import Tokenizer

        tokens = Tokenizer().tokenize("In 2020 sales rose 1,000.5 units")
        assert "2020" in tokens
        assert "1,000.5" in tokens

    def test_numbers_removed(self):
        from leximiner.analyzers.tokenizer import Tokenizer, TokenizerConfig

        tok = Tokenizer(TokenizerConfig(remove_numbers=True))
        assert tok.tokenize("In 2020 sales rose 1,000.5 units") == [
            "in", "sales", "rose", "units",
        ]

    def test_symbols(self):
        from leximiner.analyzers.tokenizer import Tokenizer, TokenizerConfig

        assert Tokenizer().tokenize("price $5 + tax") == ["price", "5", "tax"]
        keep = Tokenizer(TokenizerConfig(remove_symbols=False))
        assert keep.tokenize("price $5 + tax") == ["price", "$", "5", "+", "tax"]

    def test_case_preserved_without_lowercase(self):
        from leximiner.analyzers.tokenizer import Tokenizer, TokenizerConfig

        tok = Tokenizer(TokenizerConfig(lowercase=False))
        assert tok.tokenize("Hello World") == ["Hello", "World"]

    def test_inner_apostrophe_and_hyphen(self):
        from leximiner.analyzers.tokenizer import Tokenizer

        assert Tokenizer().tokenize("don't over-react") == ["don't", "over-react"]

    def test_config_from_dict(self):
        from leximiner.analyzers.tokenizer import TokenizerConfig

        cfg = TokenizerConfig.from_dict({"remove_numbers": True})
        assert cfg.remove_numbers is True
        assert cfg.lowercase is True
        assert TokenizerConfig.from_dict(None) == TokenizerConfig()

    def test_config_rejects_unknown_and_non_bool(self):
        from leximiner.analyzers.tokenizer import TokenizerConfig

        with pytest.raises(ConfigurationError):
            TokenizerConfig.from_dict({"stem": True})
        with pytest.raises(ConfigurationError):
            TokenizerConfig.from_dict({"lowercase": "yes"})


class TestPatterns:
    def test_exact_pattern_is_case_insensitive(self):
        from leximiner.analyzers.patterns import compile_pattern

        p = compile_pattern("Love")
        assert p.kind == "exact"
        assert p.matches("love")
        assert p.matches("LOVE")
        assert not p.matches("loved")

    def test_trailing_wildcard(self):
        from leximiner.analyzers.patterns import compile_pattern

        p = compile_pattern("lov*")
        assert p.kind == "prefix"
        for term in ("love", "loved", "loving", "lov"):
            assert p.matches(term)
        assert not p.matches("glove")

    def test_wildcard_matches_literal_prefix_only(self):
        from leximiner.analyzers.patterns import compile_pattern

        p = compile_pattern("love*")
        assert p.matches("love")
        assert p.matches("lovely")
        assert not p.matches("loving")

    def test_leading_and_surrounding_wildcards(self):
        from leximiner.analyzers.patterns import compile_pattern

        suffix = compile_pattern("*ness")
        assert suffix.kind == "suffix"
        assert suffix.matches("happiness")
        assert not suffix.matches("nessie")

        inner = compile_pattern("*app*")
        assert inner.kind == "substring"
        assert inner.matches("happy")
        assert inner.matches("app")

    def test_single_character_wildcard(self):
        from leximiner.analyzers.patterns import compile_pattern

        p = compile_pattern("l?ve")
        assert p.kind == "glob"
        assert p.matches("love")
        assert p.matches("live")
        assert not p.matches("lve")
        assert not p.matches("loove")

    def test_inner_wildcard(self):
        from leximiner.analyzers.patterns import compile_pattern

        p = compile_pattern("un*able")
        assert p.matches("unbelievable")
        assert p.matches("unable")
        assert not p.matches("unabler")

    def test_regex_characters_are_literal(self):
        from leximiner.analyzers.patterns import compile_pattern

        p = compile_pattern("a.b*")
        assert p.matches("a.bc")
        assert not p.matches("axbc")

    def test_multiword_pattern_uses_separator(self):
        from leximiner.analyzers.patterns import compile_pattern

        p = compile_pattern("did  not like")
        assert p.is_multiword
        assert p.literal == "did_not_like"
        assert p.matches("did_not_like")
        assert compile_pattern("did not like", separator="-").literal == "did-not-like"

    @pytest.mark.parametrize("raw", ["", "   ", "*", "**", "?", "*?*"])
    def test_invalid_patterns(self, raw):
        from leximiner.analyzers.patterns import compile_pattern

        with pytest.raises(PatternError):
            compile_pattern(raw)

    def test_non_string_pattern(self):
        from leximiner.analyzers.patterns import compile_pattern

        with pytest.raises(PatternError):
            compile_pattern(5)

    def test_pattern_error_is_configuration_error(self):
        assert issubclass(PatternError, ConfigurationError)
        assert issubclass(PatternError, ValueError)


class TestCompounder:
    def test_longest_rule_wins(self):
        from leximiner.analyzers.compounder import Compounder

        c = Compounder(["not like", "did not like"])
        assert c.compound(["i", "did", "not", "like", "it"]) == [
            "i", "did_not_like", "it",
        ]

    def test_rules_sorted_by_length_keeping_ties(self):
        from leximiner.analyzers.compounder import Compounder

        c = Compounder(["a b", "c d e", "f g"])
        assert [r.tokens for r in c.rules] == [("c", "d", "e"), ("a", "b"), ("f", "g")]

    def test_greedy_left_to_right(self):
        from leximiner.analyzers.compounder import Compounder

        c = Compounder(["a b", "b c"])
        assert c.compound(["a", "b", "c"]) == ["a_b", "c"]

    def test_source_tokens_are_emitted(self):
        from leximiner.analyzers.compounder import Compounder

        c = Compounder(["did not like"])
        assert c.compound(["Did", "Not", "Like"]) == ["Did_Not_Like"]

    def test_wildcard_rule(self):
        from leximiner.analyzers.compounder import Compounder

        c = Compounder([["not", "lik*"]])
        assert c.compound(["not", "liked", "it"]) == ["not_liked", "it"]

    def test_custom_separator(self):
        from leximiner.analyzers.compounder import Compounder

        assert Compounder(["a b"], separator="+").compound(["a", "b"]) == ["a+b"]

    def test_no_token_lost_or_duplicated(self):
        from leximiner.analyzers.compounder import Compounder

        tokens = ["x", "did", "not", "like", "not", "like", "y", "did"]
        out = Compounder(["did not like", "not like"]).compound(tokens)
        assert out == ["x", "did_not_like", "not_like", "y", "did"]
        assert sum(len(t.split("_")) for t in out) == len(tokens)

    def test_compounding_is_idempotent(self):
        from leximiner.analyzers.compounder import Compounder

        c = Compounder(["did not like", "not good"])
        once = c.compound(["did", "not", "like", "not", "good"])
        assert c.compound(once) == once

    def test_no_rules_returns_copy(self):
        from leximiner.analyzers.compounder import Compounder

        tokens = ["a", "b"]
        out = Compounder().compound(tokens)
        assert out == tokens
        assert out is not tokens

    def test_duplicate_rules_dropped(self):
        from leximiner.analyzers.compounder import Compounder

        assert len(Compounder(["a b", "A B", "a  b"])) == 1

    def test_single_token_rule_rejected(self):
        from leximiner.analyzers.compounder import Compounder

        with pytest.raises(ConfigurationError):
            Compounder(["alone"])

    def test_empty_separator_rejected(self):
        from leximiner.analyzers.compounder import Compounder

        with pytest.raises(ConfigurationError):
            Compounder(["a b"], separator="")


class TestStopwords:
    def test_english_default(self):
        from leximiner.analyzers.stopwords import StopwordFilter

        f = StopwordFilter()
        assert f.filter(["the", "food", "was", "great"]) == ["food", "great"]
        assert "The" in f

    def test_compound_terms_survive(self):
        from leximiner.analyzers.stopwords import StopwordFilter

        assert StopwordFilter().filter(["did_not_like", "did", "not"]) == ["did_not_like"]

    @pytest.mark.parametrize("spec", [None, False])
    def test_disabled(self, spec):
        from leximiner.analyzers.stopwords import StopwordFilter

        f = StopwordFilter(spec)
        assert len(f) == 0
        assert f.filter(["the", "a"]) == ["the", "a"]

    def test_custom_list_and_extra(self):
        from leximiner.analyzers.stopwords import StopwordFilter

        f = StopwordFilter(["foo"], extra=["Bar"])
        assert f.filter(["foo", "BAR", "baz"]) == ["baz"]

    def test_true_loads_english(self):
        from leximiner.analyzers.stopwords import StopwordFilter, load_stopwords

        assert StopwordFilter(True).stopwords == frozenset(load_stopwords("english"))

    def test_unknown_language(self):
        from leximiner.analyzers.stopwords import load_stopwords

        with pytest.raises(ConfigurationError):
            load_stopwords("klingon")


class TestCounter:
    def test_count_terms_sums_to_length(self):
        from leximiner.analyzers.counter import count_terms

        terms = ["a", "B", "b", "c"]
        counts = count_terms(terms)
        assert counts == Counter({"a": 1, "b": 2, "c": 1})
        assert sum(counts.values()) == len(terms)

    def test_count_terms_case_sensitive(self):
        from leximiner.analyzers.counter import count_terms

        assert count_terms(["B", "b"], lowercase=False) == Counter({"B": 1, "b": 1})

    def _dfm(self):
        from leximiner.analyzers.counter import DocumentFeatureMatrix

        return DocumentFeatureMatrix.from_counts(
            ["d1", "d2", "d3"],
            [{"good": 2, "bad": 1}, {"good": 1, "meh": 3}, {}],
        )

    def test_from_counts(self):
        dfm = self._dfm()
        assert dfm.shape == (3, 3)
        assert dfm.features == ["bad", "good", "meh"]
        assert dfm.row("d1") == {"bad": 1, "good": 2}
        assert dfm.row("d3") == {}
        assert dfm.row("d3", include_zero=True) == {"bad": 0, "good": 0, "meh": 0}

    def test_totals(self):
        dfm = self._dfm()
        assert dfm.row_totals() == {"d1": 3, "d2": 4, "d3": 0}
        assert dfm.term_totals() == Counter({"good": 3, "meh": 3, "bad": 1})
        assert dfm.doc_frequencies() == Counter({"good": 2, "bad": 1, "meh": 1})
        assert dfm.top_features(1)[0][1] == 3

    def test_trim(self):
        trimmed = self._dfm().trim(min_docfreq=2)
        assert trimmed.features == ["good"]
        assert trimmed.shape == (3, 1)
        assert self._dfm().trim(min_termfreq=3).features == ["good", "meh"]

    def test_prop_weighting(self):
        weighted = self._dfm().weight("prop")
        totals = weighted.row_totals()
        assert totals["d1"] == pytest.approx(1.0)
        assert totals["d2"] == pytest.approx(1.0)
        assert totals["d3"] == 0
        assert weighted.row("d2")["meh"] == pytest.approx(0.75)

    def test_tfidf_weighting(self):
        weighted = self._dfm().weight("tfidf")
        assert weighted.shape == (3, 3)
        # "bad" occurs in one document, "good" in two: rarer terms weigh more
        row = weighted.row("d1")
        assert row["bad"] > 0
        assert weighted.row("d3") == {}

    def test_unknown_weighting(self):
        with pytest.raises(ConfigurationError):
            self._dfm().weight("bm25")

    def test_all_empty_documents(self):
        from leximiner.analyzers.counter import DocumentFeatureMatrix

        dfm = DocumentFeatureMatrix.from_counts(["a", "b"], [{}, {}])
        assert dfm.shape == (2, 0)
        assert dfm.row("a") == {}

    def test_mismatched_lengths(self):
        from leximiner.analyzers.counter import DocumentFeatureMatrix

        with pytest.raises(ValueError):
            DocumentFeatureMatrix.from_counts(["a"], [{}, {}])


class TestDictionary:
    def _dictionary(self):
        from leximiner.analyzers.dictionary import Dictionary

        return Dictionary.from_dict(
            {"positive": ["good", "lov*"], "negative": ["bad", "did not like"]}
        )

    def test_names_keep_order(self):
        d = self._dictionary()
        assert d.names == ["positive", "negative"]
        assert len(d) == 2
        assert "positive" in d
        assert list(d) == ["positive", "negative"]

    def test_match_counts_every_category(self):
        d = self._dictionary()
        counts = Counter({"good": 2, "loving": 1, "bad": 1, "meh": 3})
        assert d.match(counts) == {"positive": 3, "negative": 1}
        assert d.match({}) == {"positive": 0, "negative": 0}

    def test_compound_term_matches_multiword_entry(self):
        d = self._dictionary()
        assert d.match({"did_not_like": 1}) == {"positive": 0, "negative": 1}

    def test_term_counted_once_per_category(self):
        from leximiner.analyzers.dictionary import Dictionary

        d = Dictionary.from_dict({"pos": ["good", "goo*", "*ood"]})
        assert d.match({"good": 2}) == {"pos": 2}

    def test_overlapping_categories_both_count(self):
        from leximiner.analyzers.dictionary import Dictionary

        d = Dictionary.from_dict({"a": ["well*"], "b": ["wellness"]})
        assert d.match({"wellness": 1}) == {"a": 1, "b": 1}
        assert d.categories_for("Wellness") == ("a", "b")

    def test_nested_categories_flatten(self):
        from leximiner.analyzers.dictionary import Dictionary

        d = Dictionary.from_dict(
            {"economy": {"positive": ["growth"], "negative": ["recession"]}, "other": "x"}
        )
        assert d.names == ["economy.positive", "economy.negative", "other"]
        assert d.to_dict()["other"] == ["x"]

    def test_multiword_phrases(self):
        d = self._dictionary()
        assert d.multiword_phrases() == ["did not like"]

    def test_empty_dictionary_rejected(self):
        from leximiner.analyzers.dictionary import Dictionary

        with pytest.raises(ConfigurationError):
            Dictionary.from_dict({})

    def test_non_list_value_rejected(self):
        from leximiner.analyzers.dictionary import Dictionary

        with pytest.raises(ConfigurationError):
            Dictionary.from_dict({"positive": 5})

    def test_duplicate_names_rejected(self):
        from leximiner.analyzers.dictionary import Dictionary

        with pytest.raises(ConfigurationError):
            Dictionary.from_pairs([("a", ["x"]), ("a", ["y"])])
        with pytest.raises(ConfigurationError):
            Dictionary.from_dict({"a.b": ["x"], "a": {"b": ["y"]}})

    def test_bad_pattern_rejected(self):
        from leximiner.analyzers.dictionary import Dictionary

        with pytest.raises(PatternError):
            Dictionary.from_dict({"a": ["ok", "**"]})

    def test_empty_pattern_list_warns(self, caplog):
        from leximiner.analyzers.dictionary import Dictionary

        d = Dictionary.from_dict({"a": [], "b": ["x"]})
        assert d.match({"x": 1}) == {"a": 0, "b": 1}
        assert "no patterns" in caplog.text

    def test_non_mapping_rejected(self):
        from leximiner.analyzers.dictionary import Dictionary

        with pytest.raises(ConfigurationError):
            Dictionary.from_dict(["a", "b"])

    def test_lookup_equals_match(self):
        from leximiner.analyzers.counter import DocumentFeatureMatrix

        d = self._dictionary()
        counters = [
            Counter({"good": 2, "loving": 1, "bad": 1}),
            Counter({"meh": 4}),
            Counter({"did_not_like": 1, "lovely": 2}),
        ]
        dfm = DocumentFeatureMatrix.from_counts(["d1", "d2", "d3"], counters)
        categories = d.lookup(dfm)
        assert categories.features == ["positive", "negative"]
        for doc_id, counts in zip(["d1", "d2", "d3"], counters):
            assert categories.row(doc_id, include_zero=True) == d.match(counts)


class TestDictionaryFiles:
    def test_load_yaml(self, tmp_path):
        from leximiner.analyzers.dictionary import Dictionary

        path = tmp_path / "dict.yaml"
        path.write_text("positive:\n  - good\nnegative:\n  - bad*\n", encoding="utf-8")
        d = Dictionary.load(path)
        assert d.match({"badly": 1, "good": 1}) == {"positive": 1, "negative": 1}

    def test_yaml_duplicate_keys_rejected(self, tmp_path):
        from leximiner.analyzers.dictionary import Dictionary

        path = tmp_path / "dict.yml"
        path.write_text("positive:\n  - good\npositive:\n  - great\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Duplicate key"):
            Dictionary.load(path)

    def test_yaml_bare_words_stay_strings(self, tmp_path):
        from leximiner.analyzers.dictionary import Dictionary

        path = tmp_path / "dict.yaml"
        path.write_text(
            "negative:\n  - no\n  - never\npositive: [yes, on]\nyears: [2020]\n",
            encoding="utf-8",
        )
        d = Dictionary.load(path)
        assert d.to_dict() == {
            "negative": ["no", "never"],
            "positive": ["yes", "on"],
            "years": ["2020"],
        }
        assert d.match({"no": 2, "on": 1}) == {"negative": 2, "positive": 1, "years": 0}

    @pytest.mark.parametrize(
        "name, content",
        [
            ("dict.yaml", "a: {}\nb: [x]\n"),
            ("dict.json", '{"a": {}, "b": ["x"]}'),
        ],
    )
    def test_empty_nested_mapping_is_empty_category(self, tmp_path, name, content):
        from leximiner.analyzers.dictionary import Dictionary

        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        d = Dictionary.load(path)
        assert d.names == ["a", "b"]
        assert d.match({"x": 1}) == {"a": 0, "b": 1}

    def test_invalid_yaml(self, tmp_path):
        from leximiner.analyzers.dictionary import Dictionary

        path = tmp_path / "dict.yaml"
        path.write_text("positive: [good\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            Dictionary.load(path)

    def test_load_json(self, tmp_path):
        from leximiner.analyzers.dictionary import Dictionary

        path = tmp_path / "dict.json"
        path.write_text(
            '{"economy": {"positive": ["growth"]}, "negative": ["bad"]}', encoding="utf-8"
        )
        d = Dictionary.load(path)
        assert d.names == ["economy.positive", "negative"]

    @pytest.mark.parametrize(
        "content",
        ['{"a": ["x"], "a": ["y"]}', '{"e": {"p": ["x"], "p": ["y"]}}'],
    )
    def test_json_duplicate_keys_rejected(self, tmp_path, content):
        from leximiner.analyzers.dictionary import Dictionary

        path = tmp_path / "dict.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigurationError):
            Dictionary.load(path)

    def test_unsupported_extension(self, tmp_path):
        from leximiner.analyzers.dictionary import Dictionary

        path = tmp_path / "dict.txt"
        path.write_text("good\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            Dictionary.load(path)

    def test_missing_file(self, tmp_path):
        from leximiner.analyzers.dictionary import Dictionary

        with pytest.raises(ConfigurationError):
            Dictionary.load(tmp_path / "nope.yaml")

    def test_builtin_sentiment(self):
        from leximiner.analyzers.dictionary import Dictionary

        d = Dictionary.load_builtin("sentiment")
        assert d.names == ["positive", "negative"]
        assert "did not like" in d.multiword_phrases()
        with pytest.raises(ConfigurationError):
            Dictionary.load_builtin("nope")
