import pytest
from config.settings import SIMILAR_CHARS, SYMBOLS
from src.lib.generator import PasswordPolicy, InvalidPolicy, generate_password, score_password

ALL_OFF = dict(include_uppercase=False, include_lowercase=False, include_numbers=False, include_symbols=False)

@pytest.mark.parametrize('length', [1, 4, 16, 64, 200])
def test_length_matches_policy(length):
    pol = PasswordPolicy(length=length)
    pw = generate_password(pol)
    assert len(pw) == length
    assert set(pw) <= set(pol.charset())

def test_default_policy_excludes_similar():
    pol = PasswordPolicy(length=16, exclude_similar=True)
    for _ in range(50):
        pw = generate_password(pol)
        assert len(pw) == 16
        assert not set(pw) & set(SIMILAR_CHARS)

def test_single_class_policy():
    pol = PasswordPolicy(length=32, **dict(ALL_OFF, include_numbers=True))
    pw = generate_password(pol)
    assert pw.isdigit()

def test_symbols_only_charset():
    pol = PasswordPolicy(**dict(ALL_OFF, include_symbols=True))
    assert pol.charset() == SYMBOLS

def test_exclude_similar_removes_from_every_class():
    cs = PasswordPolicy().charset()
    for c in SIMILAR_CHARS:
        assert c not in cs
    assert 'I' in cs and 'o' not in cs

def test_no_classes_is_invalid():
    with pytest.raises(InvalidPolicy):
        generate_password(PasswordPolicy(**ALL_OFF))

@pytest.mark.parametrize('length', [0, -3])
def test_non_positive_length_is_invalid(length):
    with pytest.raises(InvalidPolicy):
        generate_password(PasswordPolicy(length=length))

def test_output_varies():
    pol = PasswordPolicy(length=24)
    assert len({generate_password(pol) for _ in range(20)}) == 20

@pytest.mark.parametrize('pwd,score,label', [
    ('', 0, 'Weak'),
    ('password', 2, 'Weak'),
    ('Password', 3, 'Fair'),
    ('Password1', 4, 'Fair'),
    ('P4ssw0rd!2024', 6, 'Good'),
    ('P4ssw0rd!2024abcd', 7, 'Strong'),
])
def test_score_table(pwd, score, label):
    r = score_password(pwd)
    assert (r.score, r.label) == (score, label)

def test_score_colors():
    assert score_password('a').color == 'red'
    assert score_password('P4ssw0rd!2024abcd').color == 'green'

def test_score_is_deterministic():
    assert score_password('Tr0ub4dor&3') == score_password('Tr0ub4dor&3')

@pytest.mark.parametrize('base,extra', [('abc', 'D'), ('abcdefg', '1'), ('ABC123', '#'), ('#####', 'x')])
def test_adding_new_class_never_lowers_score(base, extra):
    assert score_password(base + extra).score >= score_password(base).score + 1
