"""Identity verification and admin membership."""

import pytest
from orders.access import build_identity_verifier
from orders.access.admin import AdminPolicy
from orders.access.port import Caller
from orders.access.static_adapter import StaticTokenVerifier
from orders.exceptions import Unauthenticated


class TestBuildIdentityVerifier:
    def test_static_adapter(self):
        assert isinstance(build_identity_verifier("static"), StaticTokenVerifier)

    def test_each_call_builds_a_fresh_instance(self):
        assert build_identity_verifier() is not build_identity_verifier()

    def test_unknown_adapter(self):
        with pytest.raises(ValueError):
            build_identity_verifier("firebase")


class TestStaticTokenVerifier:
    def test_registered_token_names_the_caller(self):
        verifier = StaticTokenVerifier()
        verifier.register("t-1", "m-1", email="one@example.com", role="seller")
        caller = verifier.verify("t-1")
        assert (caller.uid, caller.email, caller.claims) == ("m-1", "one@example.com", {"role": "seller"})

    def test_unknown_token(self):
        with pytest.raises(Unauthenticated):
            StaticTokenVerifier().verify("nope")


class TestAdminPolicy:
    def test_allow_listed_uid(self):
        assert AdminPolicy({"ops-1"}).is_admin(Caller(uid="ops-1", email=None, claims={}))

    @pytest.mark.parametrize("claims", [{"isAdmin": True}, {"admin": True}, {"role": "admin"}])
    def test_admin_claims(self, claims):
        assert AdminPolicy().is_admin(Caller(uid="ops-2", email=None, claims=claims))

    def test_truthy_but_not_true_claim_is_not_admin(self):
        assert not AdminPolicy().is_admin(Caller(uid="m-1", email=None, claims={"isAdmin": "yes"}))

    def test_seller(self):
        assert not AdminPolicy({"ops-1"}).is_admin(Caller(uid="m-1", email=None, claims={}))
