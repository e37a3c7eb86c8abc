import pytest

from rides.codes import (
    ExactMatchVerifier,
    HashedCodeVerifier,
    generate_code,
    generate_code_pair,
    mask_code,
)


@pytest.mark.unit
class TestGenerateCode:
    @pytest.mark.parametrize("length", [4, 5, 6])
    def test_numeric_without_leading_zero(self, length):
        for _ in range(200):
            code = generate_code(length)
            assert len(code) == length
            assert code.isdigit()
            assert code[0] != "0"

    @pytest.mark.parametrize("length", [0, 3, 7])
    def test_rejects_unsupported_length(self, length):
        with pytest.raises(ValueError):
            generate_code(length)

    def test_pair_is_distinct(self):
        for _ in range(200):
            start, end = generate_code_pair()
            assert start != end


@pytest.mark.unit
class TestMaskCode:
    def test_keeps_only_length(self):
        assert mask_code("4821") == "****"
        assert mask_code("482193") == "******"

    def test_missing_code(self):
        assert mask_code(None) == "<none>"
        assert mask_code("") == "<none>"


@pytest.mark.unit
@pytest.mark.parametrize("verifier", [ExactMatchVerifier(), HashedCodeVerifier(pepper="x")])
class TestVerifiers:
    def test_match(self, verifier):
        assert verifier.verify("4821", "4821")

    def test_mismatch(self, verifier):
        assert not verifier.verify("4822", "4821")

    def test_prefix_does_not_match(self, verifier):
        assert not verifier.verify("482", "4821")
        assert not verifier.verify("48210", "4821")

    def test_missing_values(self, verifier):
        assert not verifier.verify(None, "4821")
        assert not verifier.verify("", "4821")
        assert not verifier.verify("4821", None)

    def test_strips_whitespace(self, verifier):
        assert verifier.verify(" 4821\n", "4821")


@pytest.mark.unit
def test_hashed_digest_depends_on_pepper():
    assert HashedCodeVerifier("a").digest("4821") != HashedCodeVerifier("b").digest("4821")
