"""Tests for perch.http.query: query string parameters."""

from perch.http.query import QueryParams


class TestQueryParams:
    def test_first_value(self) -> None:
        q = QueryParams(b"tag=a&tag=b")
        assert q["tag"] == "a"
        assert q.get_list("tag") == ["a", "b"]

    def test_missing(self) -> None:
        q = QueryParams(b"")
        assert q.get("x") is None
        assert q.get("x", "d") == "d"
        assert q.get_list("x") == []
        assert len(q) == 0

    def test_blank_values_kept(self) -> None:
        q = QueryParams(b"flag=")
        assert "flag" in q
        assert q["flag"] == ""

    def test_get_int(self) -> None:
        q = QueryParams(b"page=3&bad=x")
        assert q.get_int("page") == 3
        assert q.get_int("bad", 1) == 1
        assert q.get_int("missing") is None

    def test_get_bool(self) -> None:
        q = QueryParams(b"a=true&b=0&c=ON")
        assert q.get_bool("a") is True
        assert q.get_bool("b") is False
        assert q.get_bool("c") is True
        assert q.get_bool("d", False) is False

    def test_raw(self) -> None:
        assert QueryParams(b"a=1").raw == b"a=1"
