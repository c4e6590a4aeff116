import datetime
from types import SimpleNamespace

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from mallcore.auth import (
    AuthError,
    AuthRepository,
    AuthUsecase,
    GetUserInfoReply,
    GetUserInfoRequest,
    SigninReply,
    SigninRequest,
    User,
    init_jwt_key,
    new_white_list_matcher,
    parse_rsa_public_key_from_pem,
)


class FakeOAuthClient:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def get_oauth_token(self, code, state):
        self.calls.append(("token", code, state))
        if self.fail:
            raise RuntimeError("boom")
        return SimpleNamespace(access_token="token")

    def parse_jwt_token(self, token):
        self.calls.append(("parse", token))
        if self.fail:
            raise RuntimeError("bad token")
        return SimpleNamespace(
            owner="org",
            type="normal-user",
            name="alice",
            id="id-1",
            avatar="avatar.png",
            email="alice@example.com",
        )


@pytest.fixture(scope="module")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def public_pem(key):
    return key.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    )


def test_signin_returns_access_token():
    client = FakeOAuthClient()
    reply = AuthRepository(client).signin(SigninRequest(code="c", state="s"))
    assert reply == SigninReply(state="ok", data="token")
    assert client.calls == [("token", "c", "s")]


def test_signin_failure_raises():
    with pytest.raises(AuthError) as info:
        AuthRepository(FakeOAuthClient(fail=True)).signin(SigninRequest())
    assert str(info.value) == "GetOAuthToken() error:boom"


def test_get_user_info_maps_claims():
    client = FakeOAuthClient()
    reply = AuthRepository(client).get_user_info(GetUserInfoRequest(authorization="token"))
    assert reply == GetUserInfoReply(
        state="ok",
        data=User(
            owner="org",
            type="normal-user",
            name="alice",
            id="id-1",
            avatar="avatar.png",
            email="alice@example.com",
        ),
    )
    assert client.calls == [("parse", "token")]


def test_get_user_info_failure_raises():
    with pytest.raises(AuthError, match=r"ParseJwtToken\(\) error"):
        AuthRepository(FakeOAuthClient(fail=True)).get_user_info(GetUserInfoRequest())


def test_usecase_delegates_to_repository():
    client = FakeOAuthClient()
    usecase = AuthUsecase(AuthRepository(client))
    assert usecase.signin(SigninRequest(code="x")).data == "token"
    assert usecase.get_user_info(GetUserInfoRequest("token")).data.name == "alice"
    assert [call[0] for call in client.calls] == ["token", "parse"]


def test_default_white_list_skips_signin():
    matcher = new_white_list_matcher()
    assert matcher("/api.auth.v1.AuthService/Signin") is False
    assert matcher("/api.auth.v1.AuthService/GetUserInfo") is True


def test_empty_white_list_requires_auth_everywhere():
    matcher = new_white_list_matcher([])
    assert matcher("/api.auth.v1.AuthService/Signin") is True


def test_parse_public_key_round_trip(rsa_key):
    key = parse_rsa_public_key_from_pem(public_pem(rsa_key))
    assert key.public_numbers() == rsa_key.public_key().public_numbers()


def test_parse_pkcs1_public_key(rsa_key):
    pem = rsa_key.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.PKCS1
    )
    key = parse_rsa_public_key_from_pem(pem)
    assert key.public_numbers() == rsa_key.public_key().public_numbers()


def test_parse_certificate(rsa_key):
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "example.com")])
    start = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(rsa_key.public_key())
        .serial_number(1)
        .not_valid_before(start)
        .not_valid_after(start + datetime.timedelta(days=1))
        .sign(rsa_key, hashes.SHA256())
    )
    pem = cert.public_bytes(serialization.Encoding.PEM).decode()
    key = init_jwt_key(pem)
    assert key.public_numbers() == rsa_key.public_key().public_numbers()


def test_parse_rejects_non_rsa_key():
    ec_key = ec.generate_private_key(ec.SECP256R1())
    with pytest.raises(ValueError, match="key is not a valid RSA public key"):
        parse_rsa_public_key_from_pem(public_pem(ec_key))


def test_parse_rejects_garbage():
    with pytest.raises(ValueError, match="failed to parse RSA public key"):
        parse_rsa_public_key_from_pem(b"not a pem")


def test_init_jwt_key_raises_on_invalid():
    with pytest.raises(AuthError, match="failed to parse public key"):
        init_jwt_key("garbage")