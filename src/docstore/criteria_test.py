"""
Tests for Criteria.

Run with: DOCSTORE_ENV=test pytest src/docstore/criteria_test.py -v
"""
import pytest

from docstore import Criteria, Document, DocumentNotFound, InvalidOptions


class Band(Document):
    pass


@pytest.fixture
def bands(store) -> list[Band]:
    rows = [
        {"name": "Depeche Mode", "genre": "synth", "members": 3, "tags": ["uk", "80s"], "hq": [0, 0]},
        {"name": "Tool", "genre": "metal", "members": 4, "tags": ["us", "90s"], "hq": [5, 5]},
        {"name": "Kraftwerk", "genre": "synth", "members": 4, "tags": ["de", "70s", "80s"], "hq": [1, 1]},
        {"name": "Boards of Canada", "genre": "ambient", "members": 2, "tags": ["uk"], "hq": [9, 9]},
    ]
    return [Band.create(row) for row in rows]


def names(documents) -> list[str]:
    return [d["name"] for d in documents]


class TestChaining:
    def test_chaining_does_not_mutate_receiver(self):
        base = Band.criteria()

        narrowed = base.where(genre="synth").order_by("name").limit(2).skip(1).only("name")

        assert base == Criteria(Band)
        assert base.selector == {}
        assert narrowed.selector == {"genre": "synth"}
        assert narrowed.sort == [("name", 1)]
        assert (narrowed.limit_value, narrowed.skip_value) == (2, 1)
        assert narrowed.fields == {"name": 1}

    def test_where_merges_operators_on_same_field(self):
        criteria = Band.where(members={"$gt": 2}).where(members={"$lt": 5})

        assert criteria.selector == {"members": {"$gt": 2, "$lt": 5}}

    def test_where_replaces_subdocument_equality(self):
        criteria = Band.where(label={"name": "Mute"}).where(label={"city": "London"})

        assert criteria.selector == {"label": {"city": "London"}}

    def test_where_replaces_operator_with_equality(self):
        criteria = Band.where(members={"$gt": 2}).where(members=4)

        assert criteria.selector == {"members": 4}

    def test_any_of_accumulates(self):
        criteria = Band.any_of({"name": "Tool"}).any_of({"name": "Kraftwerk"})

        assert criteria.selector == {"$or": [{"name": "Tool"}, {"name": "Kraftwerk"}]}

    @pytest.mark.parametrize("spec,expected", [
        ("name", [("name", 1)]),
        ("name desc", [("name", -1)]),
        (("name", "descending"), [("name", -1)]),
        (("name", -1), [("name", -1)]),
        ({"genre": 1, "name": "desc"}, [("genre", 1), ("name", -1)]),
        ([("genre", "asc"), "name desc"], [("genre", 1), ("name", -1)]),
    ])
    def test_order_by_specs(self, spec, expected):
        assert Band.order_by(spec).sort == expected

    @pytest.mark.parametrize("spec", ["name sideways", ("name", 2), "a b c", 42])
    def test_order_by_rejects_bad_specs(self, spec):
        with pytest.raises(InvalidOptions):
            Band.order_by(spec)

    def test_search_builds_from_finder_arguments(self):
        criteria = Band.search(conditions={"genre": "synth"}, sort="name desc", limit=1, skip=2)

        assert criteria == Band.where(genre="synth").order_by("name desc").limit(1).skip(2)

    def test_search_rejects_unknown_options(self):
        with pytest.raises(InvalidOptions, match="colour"):
            Band.search(conditions={}, colour="red")

    def test_includes_records_relations_once(self):
        assert Band.includes("albums").includes("albums", "members").inclusions == ["albums", "members"]


class TestExecution:
    def test_conditions(self, bands):
        assert names(Band.where(genre="synth")) == ["Depeche Mode", "Kraftwerk"]
        assert names(Band.excludes(genre="synth")) == ["Tool", "Boards of Canada"]
        assert names(Band.any_in(genre=["metal", "ambient"])) == ["Tool", "Boards of Canada"]
        assert names(Band.not_in(genre=["metal", "ambient"])) == ["Depeche Mode", "Kraftwerk"]
        assert names(Band.all_in(tags=["uk", "80s"])) == ["Depeche Mode"]

    def test_array_field_equality_matches_element(self, bands):
        assert names(Band.where(tags="80s")) == ["Depeche Mode", "Kraftwerk"]

    def test_all_of_and_any_of(self, bands):
        assert names(Band.all_of({"genre": "synth"}, {"members": 4})) == ["Kraftwerk"]
        assert names(Band.any_of({"members": 2}, {"name": "Tool"})) == ["Tool", "Boards of Canada"]

    def test_comparisons(self, bands):
        assert names(Band.where(members={"$gte": 4})) == ["Tool", "Kraftwerk"]
        assert Band.where(members={"$lt": 3}).count() == 1

    def test_booleans_and_numbers_stay_apart(self, store):
        Band.create({"name": "Numeric", "active": 1})
        Band.create({"name": "Boolean", "active": True})

        assert names(Band.where(active=True)) == ["Boolean"]
        assert names(Band.where(active=1)) == ["Numeric"]
        assert Band.where(active={"$gt": 0}).count() == 1

    def test_sorting_limit_and_skip(self, bands):
        criteria = Band.desc("members").asc("name")

        assert names(criteria) == ["Kraftwerk", "Tool", "Depeche Mode", "Boards of Canada"]
        assert names(criteria.skip(1).limit(2)) == ["Tool", "Depeche Mode"]

    def test_count_ignores_limit(self, bands):
        assert Band.limit(1).count() == 4

    def test_first_and_last_respect_sort(self, bands):
        assert Band.asc("name").first()["name"] == "Boards of Canada"
        assert Band.asc("name").last()["name"] == "Tool"
        assert Band.desc("members").last()["name"] == "Boards of Canada"

    def test_near_orders_by_distance(self, bands):
        assert names(Band.near(hq=[6, 6])) == ["Tool", "Boards of Canada", "Kraftwerk", "Depeche Mode"]

    def test_only_keeps_id(self, bands):
        band = Band.only("name").first()

        assert set(band.attributes) == {"_id", "name"}

    def test_without_drops_fields(self, bands):
        band = Band.without("tags", "hq").first()

        assert "tags" not in band.attributes
        assert band["genre"] == "synth"

    def test_aggregates_on_narrowed_criteria(self, bands):
        assert Band.where(genre="synth").sum("members") == 7
        assert Band.where(genre="synth").avg("members") == pytest.approx(3.5)
        assert Band.where(genre="polka").sum("members") == 0
        assert Band.where(genre="polka").max("members") is None

    def test_update_all_only_touches_matches(self, bands):
        assert Band.where(genre="synth").update_all(active=True) == 2
        assert Band.where(active=True).count() == 2

    def test_update_touches_first_in_order(self, bands):
        assert Band.desc("name").update(picked=True) == 1
        assert Band.find_by(picked=True)["name"] == "Tool"

    def test_update_without_match(self, bands):
        assert Band.where(genre="polka").update(picked=True) == 0


class TestFind:
    def test_find_list_returns_list(self, bands):
        assert Band.find([bands[1].id]) == [bands[1]]

    def test_find_preserves_requested_order(self, bands):
        assert Band.find(bands[3].id, bands[0].id) == [bands[3], bands[0]]

    def test_find_partial_miss_lists_missing(self, bands):
        with pytest.raises(DocumentNotFound) as excinfo:
            Band.find(bands[0].id, "gone")

        assert excinfo.value.missing == ["gone"]
        assert "gone" in str(excinfo.value)

    def test_find_respects_conditions(self, bands):
        with pytest.raises(DocumentNotFound):
            Band.where(genre="metal").find(bands[0].id)

    def test_find_without_ids(self, store):
        assert Band.find() == []
