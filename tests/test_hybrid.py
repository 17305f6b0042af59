"""
Unit tests for hybrid scoring.
"""
import pytest

from catalog.loader import Product
from recommender.hybrid import HybridScore, HybridScorer, HybridWeights


@pytest.fixture
def scorer():
    return HybridScorer()


@pytest.fixture
def phones():
    return [
        Product(id="A", name="Phone X", price=500, rating=4.5),
        Product(id="B", name="Laptop Y", price=900, rating=3.0),
        Product(id="C", name="Phone Z", price=650, rating=5.0),
    ]


class TestInclusion:

    @pytest.mark.parametrize(
        "semantic, keyword, expected",
        [
            (0.0, 0.5, True),
            (0.5, 0.0, True),
            (0.1, 0.1, False),
            (0.25, 0.30, False),
            (0.26, 0.0, True),
        ],
    )
    def test_either_signal_is_enough(self, scorer, semantic, keyword, expected):
        score = HybridScore(semantic=semantic, keyword=keyword, rating_bonus=0.0, total=0.0)
        assert scorer.qualifies(score) is expected


class TestKeywordScore:

    def test_field_priority(self, scorer):
        p = Product(id="1", name="Galaxy", brand="Samsung", category="Phones",
                    description="amoled screen", price=1)
        assert scorer.keyword_score(p, ["galaxy"]) == pytest.approx(1.0)
        assert scorer.keyword_score(p, ["samsung"]) == pytest.approx(2 / 3)
        assert scorer.keyword_score(p, ["phones"]) == pytest.approx(2 / 3)
        assert scorer.keyword_score(p, ["amoled"]) == pytest.approx(1 / 3)
        assert scorer.keyword_score(p, ["tablet"]) == 0.0

    def test_normalized_by_keyword_count(self, scorer):
        p = Product(id="1", name="Galaxy", brand="Samsung", price=1)
        assert scorer.keyword_score(p, ["galaxy", "samsung"]) == pytest.approx(5 / 6)

    def test_case_insensitive_substring(self, scorer):
        p = Product(id="1", name="Studio HEADPHONES", price=1)
        assert scorer.keyword_score(p, ["Phone"]) == pytest.approx(1.0)

    def test_no_keywords(self, scorer):
        assert scorer.keyword_score(Product(id="1", name="x", price=1), []) == 0.0


class TestScore:

    def test_weighted_sum(self, scorer):
        p = Product(id="1", name="Phone", price=1, rating=4.0)
        s = scorer.score(p, semantic=0.8, keywords=["phone"])
        assert s.rating_bonus == pytest.approx(0.04)
        assert s.total == pytest.approx(0.8 * 0.70 + 1.0 * 0.25 + 0.04)

    def test_rating_bonus_bounds(self, scorer):
        assert scorer.rating_bonus(0) == 0.0
        assert scorer.rating_bonus(5) == pytest.approx(0.05)
        assert scorer.rating_bonus(9) == pytest.approx(0.05)

    def test_custom_weights(self):
        scorer = HybridScorer(HybridWeights(semantic=1.0, keyword=0.0, rating=0.0, semantic_threshold=0.9))
        p = Product(id="1", name="Phone", price=1, rating=5)
        s = scorer.score(p, 0.5, ["phone"])
        assert s.total == pytest.approx(0.5)
        assert scorer.qualifies(s)


class TestRank:

    def test_rating_breaks_keyword_tie(self, scorer, phones):
        ranked = scorer.rank(phones, ["phone"])
        assert [c.product.id for c in ranked] == ["C", "A"]
        assert ranked[0].score.total > ranked[1].score.total

    def test_semantic_only_candidate(self, scorer, phones):
        ranked = scorer.rank(phones, ["phone"], {"B": 0.9})
        assert [c.product.id for c in ranked] == ["B", "C", "A"]

    def test_limit(self, scorer, phones):
        assert len(scorer.rank(phones, ["phone"], limit=1)) == 1

    def test_equal_totals_keep_catalog_order(self, scorer):
        twins = [Product(id=str(i), name="Phone", price=1, rating=4) for i in range(3)]
        assert [c.product.id for c in scorer.rank(twins, ["phone"])] == ["0", "1", "2"]
