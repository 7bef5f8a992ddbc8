"""
Unit tests for the domain-based facet architecture.

Facets are exercised in isolation with a mocked session; the SQL they emit
is covered by the repository tests.
"""

import pytest
from unittest.mock import Mock

from archsearch.db.schema import building_accessibility, buildings
from archsearch.domain.facets import (
    AccessibilityFacet, ArchitectsFacet, CitiesFacet, ColumnCountFacet, Facet, FacetContext,
    FacetRegistry, FacetResult, FacetType, FacetValue, StylesFacet, merge_counts,
)


def _context(rows):
    mock_db = Mock()
    mock_db.execute.return_value.all.return_value = rows
    tables = Mock(buildings=buildings, accessibility=building_accessibility)
    return FacetContext(db=mock_db, tables=tables)


class TestMergeCounts:
    def test_given_rows_with_padded_duplicates_when_merging_then_counts_are_combined(self):
        """
        Given: "Art Deco" and "Art Deco " as separate rows
        When: Merging counts
        Then: They become a single value with the summed count
        """
        # When
        values = merge_counts([("Art Deco", 2), ("Art Deco ", 1), ("Brutalism", 1)])

        # Then
        assert values == [FacetValue("Art Deco", 3), FacetValue("Brutalism", 1)]

    def test_given_null_and_blank_values_when_merging_then_they_are_dropped(self):
        """Given None, blank and zero-count rows, when merging, then they are dropped."""
        assert merge_counts([(None, 4), ("  ", 2), ("Modernism", 0)]) == []

    def test_given_equal_counts_when_merging_then_sorted_by_value(self):
        """Given equal counts, when merging, then values are ordered alphabetically."""
        values = merge_counts([("Paris", 1), ("London", 1), ("Berlin", 3)])
        assert [v.value for v in values] == ["Berlin", "London", "Paris"]


class TestStylesFacet:
    """Test the StylesFacet domain entity."""

    def test_given_styles_facet_when_computing_then_returns_facet_result(self):
        """Given a StylesFacet, when computing, then returns proper FacetResult."""
        # Given
        facet = StylesFacet()
        context = _context([("Brutalism", 1), ("High-tech", 2), ("Modernism", 2)])

        # When
        result = facet.compute(context)

        # Then
        assert isinstance(result, FacetResult)
        assert result.facet_name == "styles"
        assert result.facet_type == FacetType.SIMPLE_COUNT
        assert [(v.value, v.count) for v in result.values] == [("High-tech", 2), ("Modernism", 2), ("Brutalism", 1)]
        assert result.total_count == 5
        context.db.execute.assert_called_once()

    def test_given_column_facets_when_created_then_point_at_expected_columns(self):
        """Given the column facets, when created, then each targets its buildings column."""
        assert StylesFacet().column == "architectural_style"
        assert ArchitectsFacet().column == "architect"
        assert CitiesFacet().column == "city"


class TestAccessibilityFacet:
    def test_given_accessibility_facet_when_computing_then_returns_tag_counts(self):
        """Given an AccessibilityFacet, when computing, then returns a TAG_COUNT result."""
        # Given
        facet = AccessibilityFacet()
        context = _context([("ramp", 2), ("wheelchair", 3)])

        # When
        result = facet.compute(context)

        # Then
        assert result.facet_type == FacetType.TAG_COUNT
        assert [v.value for v in result.values] == ["wheelchair", "ramp"]


class TestFacetRegistry:
    """Test the FacetRegistry coordination."""

    def test_given_registry_when_initialized_then_has_default_facets(self):
        """Given a new registry, when initialized, then has the default facets."""
        # Given/When
        registry = FacetRegistry()

        # Then
        assert [f.name for f in registry.get_all_facets()] == ["styles", "architects", "cities", "accessibility"]

    def test_given_registry_when_registering_custom_facet_then_can_retrieve_it(self):
        """Given a registry, when registering a custom facet, then it can be retrieved."""
        # Given
        registry = FacetRegistry()

        class CountryFacet(ColumnCountFacet):
            def __init__(self):
                super().__init__("countries", "country")

        # When
        registry.register(CountryFacet())

        # Then
        assert isinstance(registry.get_facet("countries"), CountryFacet)

    def test_given_registry_when_getting_nonexistent_facet_then_returns_none(self):
        """Given a registry, when getting a nonexistent facet, then returns None."""
        assert FacetRegistry().get_facet("nonexistent") is None

    def test_given_registry_when_computing_all_then_returns_api_format(self):
        """
        Given: A registry whose facets all see the same rows
        When: Computing all facets
        Then: Each facet maps to a list of value/count dicts
        """
        # Given
        registry = FacetRegistry()
        context = _context([("Paris", 2)])

        # When
        facets = registry.compute_all_facets(context)

        # Then
        assert set(facets) == {"styles", "architects", "cities", "accessibility"}
        assert facets["cities"] == [{"value": "Paris", "count": 2}]

    def test_given_failing_facet_when_computing_all_then_error_propagates(self):
        """Given a facet whose query fails, when computing all, then the error reaches the caller."""
        # Given
        registry = FacetRegistry()
        context = _context([])
        context.db.execute.side_effect = RuntimeError("db down")

        # When/Then
        with pytest.raises(RuntimeError):
            registry.compute_all_facets(context)


class TestFacetArchitecturalBenefits:
    def test_given_facets_when_comparing_types_then_polymorphic_behavior(self):
        """Given different facet types, when comparing, then all share the Facet interface."""
        facets = [StylesFacet(), ArchitectsFacet(), CitiesFacet(), AccessibilityFacet()]
        assert all(isinstance(f, Facet) for f in facets)
        assert {f.facet_type for f in facets} == {FacetType.SIMPLE_COUNT, FacetType.TAG_COUNT}
