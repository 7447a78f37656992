import pytest

from dining.errors import InvalidInputError, NotFoundError
from dining.models import Rating
from dining.services.rating_service import upsert_rating


def test_first_rating_is_created(lunch_group):
    rating = upsert_rating('bob', 'r-a', overall=5, nutrition=3)

    assert rating.overall == 5
    assert rating.nutrition == 3
    assert Rating.query.filter_by(member_id='bob', restaurant_id='r-a').count() == 1


def test_rerating_overwrites(lunch_group):
    upsert_rating('bob', 'r-a', overall=5, nutrition=5)
    upsert_rating('bob', 'r-a', overall=2, nutrition=1)

    rows = Rating.query.filter_by(member_id='bob', restaurant_id='r-a').all()
    assert len(rows) == 1
    assert (rows[0].overall, rows[0].nutrition) == (2, 1)


def test_null_clears_a_value(lunch_group):
    upsert_rating('bob', 'r-a', overall=5, nutrition=5)
    rating = upsert_rating('bob', 'r-a', overall=None, nutrition=5)

    assert rating.overall is None
    assert rating.nutrition == 5


@pytest.mark.parametrize('overall', [0, 6, -1, True, '4', 4.0])
def test_overall_outside_domain_is_rejected(lunch_group, overall):
    with pytest.raises(InvalidInputError):
        upsert_rating('bob', 'r-a', overall=overall)

    assert Rating.query.count() == 0


@pytest.mark.parametrize('nutrition', [2, 4, 0, 6, False])
def test_nutrition_outside_domain_is_rejected(lunch_group, nutrition):
    with pytest.raises(InvalidInputError):
        upsert_rating('bob', 'r-a', overall=3, nutrition=nutrition)

    assert Rating.query.count() == 0


def test_unknown_restaurant_is_not_found(lunch_group):
    with pytest.raises(NotFoundError):
        upsert_rating('bob', 'r-missing', overall=3)


def test_unknown_member_is_not_found(lunch_group):
    with pytest.raises(NotFoundError):
        upsert_rating('nobody', 'r-a', overall=3)
