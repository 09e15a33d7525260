import re

from orgauth.authentication import pkce

BASE64URL = re.compile(r"^[A-Za-z0-9_-]+$")


def test_code_challenge_matches_rfc7636_example():
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"

    assert pkce.generate_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_code_challenge_is_deterministic():
    verifier = pkce.generate_code_verifier()

    assert pkce.generate_code_challenge(verifier) == pkce.generate_code_challenge(verifier)


def test_code_verifier_is_unpadded_base64url_of_43_chars():
    for _ in range(20):
        verifier = pkce.generate_code_verifier()
        assert len(verifier) == 43
        assert BASE64URL.match(verifier)


def test_state_values_are_unguessable_and_unique():
    states = {pkce.generate_state() for _ in range(100)}

    assert len(states) == 100
    assert all(len(state) >= 43 and BASE64URL.match(state) for state in states)


def test_flow_parameters_bind_challenge_to_verifier():
    flow = pkce.create_flow_parameters("/dashboard")

    assert flow.return_to == "/dashboard"
    assert flow.code_challenge == pkce.generate_code_challenge(flow.code_verifier)
    assert flow.state != flow.code_verifier
