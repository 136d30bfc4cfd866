import pytest

from headerguard.main import create_application
from headerguard.security.chain import PolicyChain, build_policy_chain
from headerguard.security.policies import (
    Frameguard,
    NoSniff,
    PolicyConfigurationError,
)

FINAL_STATE = [
    "hide-powered-by",
    "frameguard",
    "xss-filter",
    "no-sniff",
    "ie-no-open",
    "dns-prefetch-control",
    "no-cache",
    "content-security-policy",
]


class TestBuildPolicyChain:
    def test_default_chain_order(self, settings):
        assert build_policy_chain(settings).names == FINAL_STATE

    def test_hsts_slots_in_after_ie_no_open(self, settings_factory):
        chain = build_policy_chain(settings_factory(HSTS_ENABLED=True))
        names = chain.names
        assert names.index("hsts") == names.index("ie-no-open") + 1
        assert len(chain) == len(FINAL_STATE) + 1

    def test_invalid_frameguard_action_fails_fast(self, settings_factory):
        with pytest.raises(PolicyConfigurationError):
            build_policy_chain(settings_factory(FRAMEGUARD_ACTION="allow-from"))

    def test_invalid_csp_source_fails_application_startup(self, settings_factory):
        with pytest.raises(PolicyConfigurationError):
            create_application(settings_factory(CSP_SCRIPT_SRC=["self"]))


class TestPolicyChain:
    def test_later_toggle_wins(self, request_factory):
        chain = (
            PolicyChain()
            .use(Frameguard.build(action="sameorigin"))
            .use(Frameguard.build(action="deny"))
        )
        assert chain.preview(request_factory()) == {"x-frame-options": "DENY"}

    def test_iterates_in_registration_order(self):
        first, second = NoSniff.build(), Frameguard.build()
        chain = PolicyChain().use(first).use(second)
        assert list(chain) == [first, second]

    def test_preview_of_default_chain(self, settings, request_factory):
        preview = build_policy_chain(settings).preview(request_factory())
        assert preview["content-security-policy"] == (
            "default-src 'self'; script-src 'self' trusted-cdn.com"
        )
        assert "strict-transport-security" not in preview
