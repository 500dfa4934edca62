"""Tests for the index builder."""

from inkpress.core.indexes import build_indexes, build_reverse_links, sort_newest_first
from inkpress.core.models import GroupKind
from inkpress.errors import MissingMetadataError


def slugs(records):
    return [r.slug for r in records]


# ============================================================
# Tag index
# ============================================================


class TestTagIndex:
    def test_newest_first(self, make_record):
        jan = make_record("jan", "2024-01-01", tags=["go"])
        feb = make_record("feb", "2024-02-01", tags=["go"])
        indexes = build_indexes([jan, feb])
        assert slugs(indexes.tags["go"]) == ["feb", "jan"]

    def test_record_in_every_tag_group(self, make_record):
        record = make_record("multi", "2024-01-01", tags=["a", "b", "c"])
        indexes = build_indexes([record])
        assert sorted(indexes.tags.map) == ["a", "b", "c"]
        assert all(indexes.tags[t] == (record,) for t in ("a", "b", "c"))

    def test_undated_last_in_original_order(self, make_record):
        records = [
            make_record("page-b", tags=["t"]),
            make_record("old", "2023-01-01", tags=["t"]),
            make_record("page-a", tags=["t"]),
            make_record("new", "2024-01-01", tags=["t"]),
        ]
        indexes = build_indexes(records)
        assert slugs(indexes.tags["t"]) == ["new", "old", "page-b", "page-a"]

    def test_equal_dates_keep_original_order(self, make_record):
        records = [make_record(s, "2024-01-01", tags=["t"]) for s in ("x", "a", "m")]
        assert slugs(build_indexes(records).tags["t"]) == ["x", "a", "m"]

    def test_tags_trimmed(self, make_record):
        indexes = build_indexes([make_record("a", tags=["  python "])])
        assert "python" in indexes.tags

    def test_blank_tag_skipped_not_fatal(self, make_record):
        records = [
            make_record("bad", "2024-01-01", tags=["ok", "   ", ""]),
            make_record("good", "2024-02-01", tags=["ok"]),
        ]
        indexes = build_indexes(records)
        assert slugs(indexes.tags["ok"]) == ["good", "bad"]
        assert "" not in indexes.tags
        assert len(indexes.errors) == 2
        assert all(isinstance(e, MissingMetadataError) for e in indexes.errors)
        assert {e.slug for e in indexes.errors} == {"bad"}

    def test_display_order_by_size(self, make_record):
        records = [
            make_record("a", tags=["small", "big"]),
            make_record("b", tags=["big"]),
            make_record("c", tags=["alpha"]),
        ]
        order = [tag for tag, _ in build_indexes(records).tags.iter()]
        assert order == ["big", "alpha", "small"]

    def test_rebuild_is_deterministic(self, make_record):
        records = [make_record("a", "2024-01-01", tags=["x"]), make_record("b", tags=["x"])]
        assert build_indexes(records) == build_indexes(records)


# ============================================================
# Author, archive and stream indexes
# ============================================================


class TestOtherIndexes:
    def test_authors(self, make_record):
        records = [
            make_record("one", "2024-01-01", authors=("alice",)),
            make_record("two", "2024-02-01", authors=("alice", "bob")),
        ]
        indexes = build_indexes(records)
        assert indexes.authors.kind is GroupKind.AUTHOR
        assert slugs(indexes.authors["alice"]) == ["two", "one"]
        assert slugs(indexes.authors["bob"]) == ["two"]

    def test_archive_by_year_newest_first(self, make_record):
        records = [
            make_record("a", "2023-05-01"),
            make_record("b", "2024-01-01"),
            make_record("page"),
        ]
        indexes = build_indexes(records)
        assert [year for year, _ in indexes.archive.iter()] == ["2024", "2023"]

    def test_streams(self, make_record):
        records = [make_record("a"), make_record("news-b", stream="news")]
        indexes = build_indexes(records)
        assert [key for key, _ in indexes.streams.iter()] == ["index", "news"]


# ============================================================
# Reverse links
# ============================================================


class TestReverseLinks:
    def test_inbound_links(self, make_record):
        records = [
            make_record("a", links_to=["b"]),
            make_record("b"),
            make_record("c", links_to=["b", "a"]),
        ]
        assert build_reverse_links(records) == {"b": ("a", "c"), "a": ("c",)}

    def test_self_and_unknown_links_ignored(self, make_record):
        records = [make_record("a", links_to=["a", "ghost"])]
        assert build_reverse_links(records) == {}


class TestSortNewestFirst:
    def test_mixed(self, make_record):
        records = [make_record("p"), make_record("d", "2024-01-01")]
        assert slugs(sort_newest_first(records)) == ["d", "p"]
