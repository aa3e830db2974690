import pytest

from app.services.submission_filters import (
    FilterConfig,
    SortConfig,
    active_filters_count,
    apply_filters,
    filter_submissions,
    sort_submissions,
    to_view_record,
)


def _rec(id, title, *, status="pending", genre="Poetry", author="Ada", pub=("p1", "Quarterly"), words=1000, at="2026-01-10T10:00:00+00:00"):
    return {
        "id": id,
        "title": title,
        "author": author,
        "status": status,
        "genre": genre,
        "word_count": words,
        "submitted_at": at,
        "publication": {"id": pub[0], "name": pub[1]},
    }


RECORDS = [
    _rec("1", "Salt Roads", status="pending", genre="Poetry", words=800, at="2026-01-01T00:00:00+00:00"),
    _rec("2", "Night Ferry", status="accepted", genre="Fiction", author="Basil", words=4000, at="2026-02-01T00:00:00+00:00"),
    _rec("3", "Orchard", status="declined", genre="Essay", pub=("p2", "Harbor Review"), words=None, at="2026-03-01T00:00:00+00:00"),
    _rec("4", "Salt Marsh", status="under_review", genre="Fiction", words=2500, at="2026-02-01T00:00:00+00:00"),
]


def test_empty_query_and_filters_return_everything():
    assert len(filter_submissions(RECORDS, "", FilterConfig())) == len(RECORDS)


def test_query_is_case_insensitive_over_title_author_genre_publication():
    assert {r["id"] for r in filter_submissions(RECORDS, "salt")} == {"1", "4"}
    assert {r["id"] for r in filter_submissions(RECORDS, "BASIL")} == {"2"}
    assert {r["id"] for r in filter_submissions(RECORDS, "essay")} == {"3"}
    assert {r["id"] for r in filter_submissions(RECORDS, "harbor")} == {"3"}


def test_values_within_a_dimension_are_ored_and_dimensions_anded():
    cfg = FilterConfig.build(status=["pending,accepted"], genre=["Fiction"])
    assert [r["id"] for r in filter_submissions(RECORDS, "", cfg)] == ["2"]


def test_every_result_satisfies_every_active_filter():
    cfg = FilterConfig.build(
        status=["pending", "under_review", "accepted"],
        date_from="2026-01-15T00:00:00Z",
        min_words=1000,
        max_words=5000,
    )
    result = filter_submissions(RECORDS, "", cfg)
    assert {r["id"] for r in result} == {"2", "4"}
    for r in result:
        assert r["status"] in cfg.status
        assert 1000 <= r["word_count"] <= 5000


def test_word_range_excludes_records_without_word_count():
    cfg = FilterConfig.build(min_words=0)
    assert "3" not in {r["id"] for r in filter_submissions(RECORDS, "", cfg)}


def test_publication_filter_matches_on_id():
    cfg = FilterConfig.build(publication=["p2"])
    assert [r["id"] for r in filter_submissions(RECORDS, "", cfg)] == ["3"]


def test_build_rejects_inverted_ranges():
    with pytest.raises(ValueError):
        FilterConfig.build(min_words=10, max_words=5)
    with pytest.raises(ValueError):
        FilterConfig.build(date_from="2026-02-01", date_to="2026-01-01")
    with pytest.raises(ValueError):
        FilterConfig.build(date_from="not-a-date")


def test_default_sort_is_newest_first():
    ids = [r["id"] for r in sort_submissions(RECORDS)]
    assert ids[0] == "3"
    assert ids[-1] == "1"


@pytest.mark.parametrize("key", ["submitted_at", "title", "author", "status", "genre", "word_count", "publication"])
def test_toggling_direction_exactly_reverses_order(key):
    asc = [r["id"] for r in sort_submissions(RECORDS, SortConfig(key=key, direction="asc"))]
    desc = [r["id"] for r in sort_submissions(RECORDS, SortConfig(key=key, direction="desc"))]
    assert desc == list(reversed(asc))


def test_toggle_semantics():
    cfg = SortConfig()
    assert (cfg.key, cfg.direction) == ("submitted_at", "desc")
    flipped = cfg.toggle("submitted_at")
    assert flipped.direction == "asc"
    assert flipped.toggle("submitted_at").direction == "desc"
    assert cfg.toggle("title") == SortConfig(key="title", direction="asc")


def test_sort_config_rejects_unknown_key():
    with pytest.raises(ValueError):
        SortConfig(key="rating")
    with pytest.raises(ValueError):
        SortConfig(direction="sideways")


def test_apply_filters_is_idempotent_and_does_not_mutate_input():
    before = [dict(r) for r in RECORDS]
    cfg = FilterConfig.build(genre=["Fiction"])
    first = apply_filters(RECORDS, query="", filters=cfg, sort=SortConfig(key="title", direction="asc"))
    second = apply_filters(RECORDS, query="", filters=cfg, sort=SortConfig(key="title", direction="asc"))
    assert first == second
    assert [r["title"] for r in first] == ["Night Ferry", "Salt Marsh"]
    assert RECORDS == before


def test_active_filters_count():
    cfg = FilterConfig.build(status=["pending"], genre=["Poetry", "Essay"], min_words=10)
    assert cfg.active_count() == 3
    assert active_filters_count(cfg, " salt ") == 4
    assert active_filters_count(None, "") == 0
    assert cfg.clear() == FilterConfig()
    assert cfg.clear().active_count() == 0


def test_to_view_record_flattens_embedded_rows():
    row = {
        "id": "s1",
        "title": "T",
        "status": "pending",
        "forms": {"id": "f1", "name": "General", "publications": {"id": "p1", "name": "Quarterly"}},
        "users": {"id": "u1", "name": None, "email": "ada@example.com"},
    }
    view = to_view_record(row)
    assert view["author"] == "ada@example.com"
    assert view["form"] == {"id": "f1", "name": "General"}
    assert view["publication"] == {"id": "p1", "name": "Quarterly"}
