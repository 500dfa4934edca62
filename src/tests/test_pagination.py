"""Tests for the pagination planner."""

import math

import pytest

from inkpress.core.pagination import paginate
from inkpress.errors import InvalidPageSizeError


class TestPaginate:
    def test_seven_items_by_three(self):
        pages = paginate(list(range(7)), 3)
        assert [len(p.items) for p in pages] == [3, 3, 1]
        second = pages[1]
        assert second.number == 2
        assert second.total_pages == 3
        assert second.previous_page == 1
        assert second.next_page == 3

    def test_first_and_last_page_links(self):
        pages = paginate(list(range(7)), 3)
        assert pages[0].previous_page is None
        assert pages[-1].next_page is None

    def test_items_keep_input_order(self):
        pages = paginate(["c", "a", "b", "d"], 3)
        assert pages[0].items == ("c", "a", "b")
        assert pages[1].items == ("d",)

    @pytest.mark.parametrize("count,size", [(1, 1), (10, 3), (10, 10), (11, 10), (100, 7)])
    def test_page_count(self, count, size):
        assert len(paginate(list(range(count)), size)) == math.ceil(count / size)

    def test_idempotent(self):
        items = list(range(11))
        assert paginate(items, 4) == paginate(items, 4)

    def test_empty_listing_has_one_page(self):
        pages = paginate([], 5)
        assert len(pages) == 1
        assert pages[0].items == ()
        assert pages[0].total_pages == 1

    def test_filenames(self):
        pages = paginate(list(range(5)), 2, stem="tag-python")
        assert [p.filename for p in pages] == ["tag-python.html", "tag-python-2.html", "tag-python-3.html"]
        assert pages[1].previous_filename == "tag-python.html"
        assert pages[1].next_filename == "tag-python-3.html"
        assert pages[0].previous_filename is None

    @pytest.mark.parametrize("size", [0, -1, 2.5, True])
    def test_invalid_page_size(self, size):
        with pytest.raises(InvalidPageSizeError):
            paginate([1, 2, 3], size)
