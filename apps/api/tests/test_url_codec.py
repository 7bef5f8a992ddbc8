from archsearch.core.enums import SortMode
from archsearch.core.url_codec import decode, encode
from archsearch.schemas.filters import FilterState, Location


class TestEncode:
    def test_given_default_filters_and_blank_query_when_encoding_then_returns_no_params(self):
        """Given pristine filters and a blank query, when encoding, then no keys are emitted."""
        assert encode("   ", FilterState()) == {}

    def test_given_non_default_fields_when_encoding_then_emits_only_those_keys(self):
        """
        Given: A query, two styles, a lower year bound, a rating floor and the audio toggle off
        When: Encoding
        Then: Lists are sorted and comma-joined, numbers are compact, defaults are left out
        """
        # Given
        filters = FilterState(
            styles={"Modernism", "Art Deco"},
            year_range=(1900, 3000),
            min_rating=4,
            has_audio=False,
        )

        # When
        params = encode(" casa ", filters)

        # Then
        assert params == {
            "q": "casa",
            "styles": "Art Deco,Modernism",
            "year_from": "1900",
            "min_rating": "4",
            "has_audio": "false",
        }

    def test_given_geo_filters_when_encoding_then_emits_position_and_distance(self):
        """Given near_me with a location and 2.5 km, when encoding, then all geo keys are present."""
        # Given
        filters = FilterState(near_me=True, max_distance_km=2.5,
                              user_location=Location(latitude=48.8566, longitude=2.3522),
                              sort_by=SortMode.distance)

        # When
        params = encode("", filters)

        # Then
        assert params == {
            "near_me": "true",
            "max_distance": "2.5",
            "lat": "48.8566",
            "lon": "2.3522",
            "sort": "distance",
        }

    def test_given_value_with_comma_and_percent_when_encoding_then_they_are_escaped(self):
        """Given a list value containing "," and "%", when encoding, then both are percent-escaped."""
        params = encode("", FilterState(architects={"Skidmore, Owings & Merrill", "100% Studio"}))
        assert params == {"architects": "100%25 Studio,Skidmore%2C Owings & Merrill"}


class TestDecode:
    def test_given_empty_params_when_decoding_then_returns_defaults(self):
        """Given no params, when decoding, then query is blank and filters are pristine."""
        q, filters = decode({})
        assert q == ""
        assert filters.is_pristine()

    def test_given_encoded_state_when_decoding_then_restores_every_non_default_field(self):
        """
        Given: A state touching every filter field
        When: Encoding and decoding it
        Then: The decoded query and filters equal the originals
        """
        # Given
        filters = FilterState(
            styles={"Brutalism", "High-tech"},
            architects={"Renzo Piano"},
            cities={"Paris", "São Paulo"},
            accessibility={"ramp", "elevator"},
            year_range=(1900, 1990),
            min_rating=3.5,
            has_photo=True,
            has_audio=True,
            sort_by=SortMode.rating,
            near_me=True,
            search_in_reviews=True,
            max_distance_km=25,
            user_location=Location(latitude=-23.5614, longitude=-46.6559),
        )

        # When
        q, decoded = decode(encode("tower", filters))

        # Then
        assert q == "tower"
        assert decoded == filters

    def test_given_malformed_values_when_decoding_then_those_fields_fall_back_to_defaults(self):
        """
        Given: Params with a bad rating, an unknown sort, a non-boolean and a valid style
        When: Decoding
        Then: Only the valid style survives
        """
        # Given
        params = {
            "styles": "Modernism",
            "min_rating": "lots",
            "sort": "popularity",
            "has_photo": "maybe",
            "max_distance": "-3",
        }

        # When
        _, filters = decode(params)

        # Then
        assert filters == FilterState(styles={"Modernism"})

    def test_given_inverted_year_bounds_when_decoding_then_year_range_is_ignored(self):
        """Given year_from after year_to, when decoding, then the default range is kept."""
        _, filters = decode({"year_from": "2000", "year_to": "1900", "min_rating": "4"})
        assert filters.year_range == (0, 3000)
        assert filters.min_rating == 4

    def test_given_out_of_range_rating_when_decoding_then_only_rating_is_dropped(self):
        """Given min_rating=9 and a city, when decoding, then the city is kept."""
        _, filters = decode({"min_rating": "9", "cities": "Paris"})
        assert filters == FilterState(cities={"Paris"})

    def test_given_single_coordinate_when_decoding_then_location_is_ignored(self):
        """Given only lat, when decoding, then no location is set."""
        _, filters = decode({"lat": "48.85", "near_me": "true"})
        assert filters.user_location is None
        assert filters.near_me is True

    def test_given_values_with_commas_when_round_tripping_then_each_value_survives_whole(self):
        """
        Given: Architect and city values that contain commas and percent signs
        When: Encoding then decoding
        Then: Every value comes back exactly, not split at its commas
        """
        # Given
        filters = FilterState(
            architects={"Skidmore, Owings & Merrill", "Herzog & de Meuron"},
            cities={"Washington, D.C.", "50%2C Town"},
        )

        # When
        q, decoded = decode(encode("", filters))

        # Then
        assert q == ""
        assert decoded == filters
        assert decoded.architects == {"Skidmore, Owings & Merrill", "Herzog & de Meuron"}
