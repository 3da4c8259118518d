"""Tests for guestmatch.matching module."""

import logging

import pytest

from guestmatch import GuestRecord, MatchMethod, MatchType
from guestmatch.config import FuzzyConfig
from guestmatch.matching import (
    GuestMatcher,
    find_best_match,
    find_best_match_by_name,
    find_multiple_matches,
)
from guestmatch.phone import PhoneNormalizer
from guestmatch.scoring import similarity


def _guest(name, phone=None, id=None) -> GuestRecord:
    """Create a GuestRecord with an id derived from the name."""
    return GuestRecord(id=id or str(name).lower().replace(' ', '-'), name=name, phone=phone)


class TestFindBestMatchByName:
    """Tests for name-only matching."""

    def test_exact_match(self):
        result = find_best_match_by_name('maria jose', [_guest('María José')])
        assert result is not None
        assert result.is_exact_match is True
        assert result.match_type is MatchType.EXACT
        assert result.similarity == 100.0
        assert result.match_method is None

    def test_exact_match_short_circuits(self):
        # The first guest scores 90, the second is exact and must win
        guests = [_guest('Maria Jos', id='first'), _guest('María José', id='second')]
        result = find_best_match_by_name('Maria Jose', guests)
        assert result.guest.id == 'second'
        assert result.is_exact_match is True

    def test_threshold_gating(self):
        assert find_best_match_by_name('Pedro Sánchez', [_guest('María José')]) is None

    def test_partial_name(self):
        result = find_best_match_by_name('María', [_guest('María José González')])
        assert result is not None
        assert result.match_type is MatchType.PARTIAL
        assert result.is_exact_match is False
        assert result.similarity >= 80

    def test_fuzzy_typo(self):
        result = find_best_match_by_name('Maria Josi', [_guest('María José')])
        assert result.match_type is MatchType.FUZZY
        assert result.similarity == 90.0
        assert result.is_exact_match is False

    def test_normalized_names_reported(self):
        result = find_best_match_by_name('  MARIA josi ', [_guest('María-José')])
        assert result.normalized_search_name == 'maria josi'
        assert result.normalized_guest_name == 'maria jose'

    def test_best_candidate_wins(self):
        guests = [_guest('Roberto Carlos'), _guest('María Josefa'), _guest('María José')]
        result = find_best_match_by_name('Maria Josi', guests)
        assert result.guest.name == 'María José'

    def test_first_candidate_wins_ties(self):
        guests = [_guest('Maria Josa', id='a'), _guest('Maria Josi', id='b')]
        result = find_best_match_by_name('Maria Jose', guests)
        assert result.similarity == 90.0
        assert result.guest.id == 'a'

    def test_partial_score_just_below_threshold(self):
        search = 'a' * 11 + 'wxyz ' + 'b' * 11 + 'wxyz ' + 'c' * 14 + 'z'
        guests = [_guest(' '.join(['c' * 15, 'b' * 15, 'a' * 15]))]
        assert find_best_match_by_name(search, guests) is None
        assert find_multiple_matches(search, guests) == []

    def test_invalid_guest_names_skipped(self):
        # Unvalidated records, as a caller might build them
        guests = [
            GuestRecord.model_construct(id='none', name=None),
            GuestRecord.model_construct(id='number', name=123),
            _guest('María José'),
        ]
        result = find_best_match_by_name('Maria Jose', guests)
        assert result.guest.name == 'María José'

    @pytest.mark.parametrize('name', ['', None, 'a', 'A.', '¡!', 42])
    def test_invalid_search_name(self, name):
        assert find_best_match_by_name(name, [_guest('Ana')]) is None

    def test_empty_guest_list(self):
        assert find_best_match_by_name('María José', []) is None

    def test_custom_threshold(self):
        strict = FuzzyConfig(similarity_threshold=95)
        assert find_best_match_by_name('Maria Josi', [_guest('María José')], config=strict) is None

    def test_custom_min_name_length(self):
        matcher = GuestMatcher(FuzzyConfig(min_name_length=4))
        assert matcher.find_best_match_by_name('Ana', [_guest('Ana')]) is None

    def test_guest_not_mutated(self):
        g = _guest('María José', phone='5551112222')
        result = find_best_match_by_name('Maria Josi', [g])
        assert result.guest is g
        assert g == _guest('María José', phone='5551112222')

    def test_search_stats_logged(self, caplog):
        with caplog.at_level(logging.DEBUG, logger='guestmatch.matching'):
            find_best_match_by_name('Pedro Sánchez', [_guest('María José')])
        assert 'Search stats' in caplog.text
        assert 'candidates_evaluated=1' in caplog.text


class TestFindBestMatchWithPhone:
    """Tests for phone-aware matching."""

    def test_phone_match_overrides_name(self):
        guests = [_guest('Roberto Carlos', phone='55-1234-5678')]
        result = find_best_match('Pedro Sánchez', guests, '+52 55 1234 5678')
        assert result.guest.name == 'Roberto Carlos'
        assert result.similarity == 100.0
        assert result.is_exact_match is True
        assert result.match_type is MatchType.EXACT
        assert result.match_method is MatchMethod.PHONE
        assert result.phone_match is True
        assert result.name_similarity == similarity('Pedro Sánchez', 'Roberto Carlos')

    def test_phone_match_beats_exact_name(self):
        guests = [
            _guest('Pedro Sánchez', phone='5500000000'),
            _guest('Roberto Carlos', phone='5512345678'),
        ]
        result = find_best_match('Pedro Sánchez', guests, '5512345678')
        assert result.guest.name == 'Roberto Carlos'
        assert result.match_method is MatchMethod.PHONE

    def test_conflict_penalty(self):
        guests = [_guest('María José', phone='5551112222')]
        result = find_best_match('Maria Josi', guests, '5559998888')
        assert result.similarity == 70.0
        assert result.has_conflict is True
        assert result.match_method is MatchMethod.NAME_WITH_PHONE_CONFLICT
        assert result.phone_match is False
        assert result.match_type is MatchType.FUZZY

    def test_conflict_penalty_configurable(self):
        guests = [_guest('María José', phone='5551112222')]
        result = find_best_match(
            'Maria Josi', guests, '5559998888', config=FuzzyConfig(conflict_penalty=5),
        )
        assert result.similarity == 85.0

    def test_conflict_penalty_floored_at_zero(self):
        guests = [_guest('María José', phone='5551112222')]
        result = find_best_match(
            'María José', guests, '5559998888', config=FuzzyConfig(conflict_penalty=200),
        )
        assert result.similarity == 0.0
        assert result.has_conflict is True

    def test_name_match_without_phone_on_file(self):
        result = find_best_match('Maria Josi', [_guest('María José')], '5559998888')
        assert result.similarity == 90.0
        assert result.match_method is MatchMethod.NAME
        assert result.has_conflict is False
        assert result.phone_match is False

    def test_no_phone_given_leaves_method_unset(self):
        result = find_best_match('Maria Josi', [_guest('María José', phone='5551112222')])
        assert result.match_method is None
        assert result.similarity == 90.0

    def test_no_match_at_all(self):
        guests = [_guest('María José', phone='5551112222')]
        assert find_best_match('Pedro Sánchez', guests, '5559998888') is None

    def test_invalid_name_ignores_phone(self):
        guests = [_guest('Roberto Carlos', phone='5512345678')]
        assert find_best_match('', guests, '5512345678') is None

    def test_blank_phones_never_match(self):
        guests = [_guest('Roberto Carlos', phone='---'), _guest('María José')]
        result = find_best_match('Maria Jose', guests, 'n/a')
        assert result.guest.name == 'María José'
        assert result.match_method is MatchMethod.NAME

    def test_country_code_rules_configurable(self):
        guests = [_guest('Roberto Carlos', phone='5512345678')]
        matcher = GuestMatcher(FuzzyConfig(phone_normalizer=PhoneNormalizer(rules=())))
        assert matcher.find_best_match('Pedro Sánchez', guests, '+52 55 1234 5678') is None


class TestFindMultipleMatches:
    """Tests for ambiguity detection."""

    @pytest.fixture
    def juanes(self):
        return [
            _guest('Juan Pérez'),
            _guest('Roberto Carlos'),
            _guest('Juan Carlos Pérez'),
            _guest('Juana Pérez'),
        ]

    def test_all_above_threshold_sorted(self, juanes):
        results = find_multiple_matches('Juan Perez', juanes)
        assert [r.guest.name for r in results] == [
            'Juan Pérez', 'Juan Carlos Pérez', 'Juana Pérez',
        ]
        assert [r.similarity for r in results] == [100.0, 100.0, 90.91]
        assert results[0].match_type is MatchType.EXACT
        assert results[1].match_type is MatchType.PARTIAL
        assert results[2].match_type is MatchType.FUZZY

    def test_sorted_descending(self, juanes):
        results = find_multiple_matches('Juan Perez', list(reversed(juanes)))
        scores = [r.similarity for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_max_results(self, juanes):
        assert len(find_multiple_matches('Juan Perez', juanes, max_results=2)) == 2
        assert find_multiple_matches('Juan Perez', juanes, max_results=0) == []

    def test_below_threshold_excluded(self, juanes):
        assert find_multiple_matches('Pedro Sánchez', juanes) == []

    def test_invalid_input(self, juanes):
        assert find_multiple_matches('', juanes) == []
        assert find_multiple_matches('Juan Perez', []) == []


class TestEndToEnd:
    """A submitted short name against a registered full name."""

    def test_dropped_middle_name_and_accents(self):
        guests = [_guest('Juan Carlos Pérez', phone='5551234567')]
        result = find_best_match('Juan Perez', guests, None)
        assert result is not None
        assert result.similarity >= 80
        assert result.match_type in (MatchType.FUZZY, MatchType.PARTIAL)
        assert result.is_exact_match is False
