"""
Tests for match scoring and ranking.
"""

from datetime import datetime

from casededup.models import DeduplicationCriteria
from casededup.scoring import FIELD_WEIGHTS, MATCH_RULES, name_weight, rank, score, score_candidate


class TestWeights:
    """The weight table is plain data."""

    def test_field_weights(self):
        assert FIELD_WEIGHTS == {
            "nationalId": 100,
            "secondaryNationalId": 100,
            "phone": 80,
            "email": 70,
            "bankAccountNumber": 90,
            "name": 60,
        }

    def test_rule_order(self):
        assert [r.label for r in MATCH_RULES] == [
            "nationalId", "secondaryNationalId", "phone", "email", "bankAccountNumber",
        ]

    def test_name_weight_floors(self):
        assert name_weight("Jon Smith", "John Smith") == 54
        assert name_weight("John Smith", "john smith") == 60

    def test_name_weight_zero_at_or_below_threshold(self):
        assert name_weight("abcde", "abcxy") == 0
        assert name_weight("Alice", "Bob") == 0
        assert name_weight(None, "Bob") == 0
        assert name_weight("Bob", None) == 0


class TestScoreCandidate:
    """Test field matching for a single candidate."""

    def test_national_id_only(self, candidate_factory, national_id_criteria):
        candidate = candidate_factory("c1", national_id="ABCDE1234F", name="Someone Else")
        match = score_candidate(national_id_criteria, candidate)

        assert match.score == 100
        assert match.matched_fields == ["nationalId"]

    def test_national_id_normalized_both_sides(self, candidate_factory):
        criteria = DeduplicationCriteria(national_id="abcde 1234f")
        candidate = candidate_factory("c1", national_id="abcde1234f")

        assert score_candidate(criteria, candidate).score == 100

    def test_email_case_insensitive(self, candidate_factory):
        criteria = DeduplicationCriteria(email="John.Smith@Example.COM")
        candidate = candidate_factory("c1", email="john.smith@example.com")
        match = score_candidate(criteria, candidate)

        assert match.matched_fields == ["email"]
        assert match.score == 70

    def test_phone_requires_exact_equality(self, candidate_factory):
        criteria = DeduplicationCriteria(phone="9876543210")
        candidate = candidate_factory("c1", phone="+91 9876543210")

        assert score_candidate(criteria, candidate).score == 0

    def test_all_fields_in_fixed_order(self, candidate_factory):
        criteria = DeduplicationCriteria(
            name="John Smith",
            national_id="ABCDE1234F",
            secondary_national_id="123412341234",
            phone="9876543210",
            email="john.smith@example.com",
            bank_account_number="001122334455",
        )
        candidate = candidate_factory(
            "c1",
            name="John Smith",
            national_id="ABCDE1234F",
            secondary_national_id="123412341234",
            phone="9876543210",
            email="john.smith@example.com",
            bank_account_number="001122334455",
        )
        match = score_candidate(criteria, candidate)

        assert match.matched_fields == [
            "nationalId", "secondaryNationalId", "phone", "email", "bankAccountNumber", "name",
        ]
        assert match.score == 100 + 100 + 80 + 70 + 90 + 60

    def test_fuzzy_name(self, candidate_factory):
        criteria = DeduplicationCriteria(name="Jon Smith")
        match = score_candidate(criteria, candidate_factory("c1", name="John Smith"))

        assert match.matched_fields == ["name"]
        assert match.score == 54

    def test_field_absent_from_criteria_never_contributes(self, candidate_factory):
        criteria = DeduplicationCriteria(phone="9876543210")
        candidate = candidate_factory("c1", phone="9876543210", national_id="ABCDE1234F")

        assert score_candidate(criteria, candidate).matched_fields == ["phone"]

    def test_candidate_missing_field_never_matches(self, candidate_factory, national_id_criteria):
        match = score_candidate(national_id_criteria, candidate_factory("c1"))

        assert match.matched_fields == []
        assert match.score == 0

    def test_candidate_data_carried_through(self, candidate_factory, national_id_criteria):
        candidate = candidate_factory(
            "c1", national_id="ABCDE1234F", case_reference="CASE-1", owner_name="Acme", status="OPEN",
        )
        match = score_candidate(national_id_criteria, candidate)

        assert match.id == "c1"
        assert match.case_reference == "CASE-1"
        assert match.owner_name == "Acme"
        assert match.status == "OPEN"


class TestRanking:
    """Test ordering of scored matches."""

    def test_higher_score_first_regardless_of_input_order(self, candidate_factory):
        criteria = DeduplicationCriteria(national_id="ABCDE1234F", phone="9876543210")
        phone_only = candidate_factory("phone", phone="9876543210", created_at=datetime(2024, 5, 1))
        id_only = candidate_factory("nid", national_id="ABCDE1234F", created_at=datetime(2024, 1, 1))

        for candidates in ([phone_only, id_only], [id_only, phone_only]):
            ranked = score(criteria, candidates)
            assert [m.id for m in ranked] == ["nid", "phone"]
            assert [m.score for m in ranked] == [100, 80]

    def test_ties_broken_by_most_recent(self, candidate_factory):
        criteria = DeduplicationCriteria(phone="9876543210")
        older = candidate_factory("older", phone="9876543210", created_at=datetime(2023, 1, 1))
        newer = candidate_factory("newer", phone="9876543210", created_at=datetime(2024, 1, 1))

        ranked = score(criteria, [older, newer])

        assert [m.id for m in ranked] == ["newer", "older"]

    def test_equal_score_and_time_keep_input_order(self, candidate_factory):
        criteria = DeduplicationCriteria(phone="9876543210")
        when = datetime(2024, 1, 1)
        candidates = [candidate_factory(f"c{i}", phone="9876543210", created_at=when) for i in range(4)]

        ranked = score(criteria, candidates)

        assert [m.id for m in ranked] == ["c0", "c1", "c2", "c3"]

    def test_zero_score_candidates_kept(self, candidate_factory):
        criteria = DeduplicationCriteria(name="Smith")
        candidates = [candidate_factory("c1", name="John Smith")]

        ranked = score(criteria, candidates)

        assert len(ranked) == 1
        assert ranked[0].score == 0
        assert ranked[0].matched_fields == []

    def test_rank_is_deterministic(self, candidate_factory):
        criteria = DeduplicationCriteria(name="Jon Smith", phone="9876543210")
        candidates = [
            candidate_factory("a", name="John Smith", created_at=datetime(2024, 1, 2)),
            candidate_factory("b", phone="9876543210", created_at=datetime(2024, 1, 3)),
            candidate_factory("c", name="Jon Smyth", created_at=datetime(2024, 1, 1)),
        ]

        first = score(criteria, candidates)
        second = score(criteria, candidates)

        assert [m.model_dump() for m in first] == [m.model_dump() for m in second]

    def test_rank_empty(self):
        assert rank([]) == []
