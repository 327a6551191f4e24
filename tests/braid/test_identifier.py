import pytest

from braid import _identifier


def test_validate():
    tru_id = _identifier.validate("abc", _identifier.Identifier.SESSION)
    exp_id = "abc"
    assert tru_id == exp_id


@pytest.mark.parametrize(
    "id_",
    [
        "",
        "   ",
        "a/../b",
        "a/b",
    ],
)
def test_validate_invalid(id_):
    with pytest.raises(ValueError, match="app_name"):
        _identifier.validate(id_, _identifier.Identifier.APP)
