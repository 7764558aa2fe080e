"""
Tests for the Mint Rule Evaluator

Tests evaluate_mint() and the concrete mint rules: forbidden extensions,
transfer fee range, and mint/freeze authority checks.
"""

import pytest

from accounts.address import MintAddress
from accounts.records import AccountRecord, TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID
from accounts.token import ExtensionType, decode_mint
from validator.core import (
    ACCOUNT_NOT_FOUND,
    DEFAULT_FORBIDDEN_EXTENSIONS,
    DEFAULT_RULES,
    MintCheckContext,
    MintRule,
    RuleConfiguration,
    default_rules,
    evaluate_mint
)
from validator.report import Verdict
from validator.rules import (
    ForbiddenExtensionRule,
    FreezeAuthorityRule,
    MintAuthorityRule,
    TransferFeeRule
)


MINT = MintAddress(b"\x42" * 32)


class TestRuleConfiguration:
    """Test RuleConfiguration parsing and merging."""

    def test_defaults(self):
        assert DEFAULT_RULES.forbidden_extensions == DEFAULT_FORBIDDEN_EXTENSIONS
        assert DEFAULT_RULES.min_fee_basis_points == 0
        assert DEFAULT_RULES.max_fee_basis_points == 10_000
        assert DEFAULT_RULES.check_fees
        assert DEFAULT_RULES.check_mint_renounced
        assert DEFAULT_RULES.check_freezable

    def test_extension_names_accepted(self):
        config = RuleConfiguration(forbidden_extensions=["transfer_hook", 12, ExtensionType.NonTransferable])

        assert config.forbidden_extensions == {
            ExtensionType.TransferHook,
            ExtensionType.PermanentDelegate,
            ExtensionType.NonTransferable,
        }
        assert config.forbidden_names() == ["NonTransferable", "PermanentDelegate", "TransferHook"]

    def test_unknown_extension_name_rejected(self):
        with pytest.raises(ValueError):
            RuleConfiguration(forbidden_extensions=["NoSuchExtension"])

    @pytest.mark.parametrize("kwargs", [
        {"min_fee_basis_points": -1},
        {"max_fee_basis_points": 10_001},
        {"min_fee_basis_points": 500, "max_fee_basis_points": 100},
    ])
    def test_invalid_fee_range(self, kwargs):
        with pytest.raises(ValueError):
            RuleConfiguration(**kwargs)

    def test_merged_with_fills_unset_fields(self):
        config = RuleConfiguration(check_freezable=False, max_fee_basis_points=300)
        merged = config.merged_with(DEFAULT_RULES)

        assert merged.check_freezable is False
        assert merged.max_fee_basis_points == 300
        assert merged.min_fee_basis_points == 0
        assert merged.check_mint_renounced is True
        assert merged.forbidden_extensions == DEFAULT_FORBIDDEN_EXTENSIONS

    def test_empty_forbidden_set_is_kept(self):
        merged = RuleConfiguration(forbidden_extensions=[]).merged_with(DEFAULT_RULES)

        assert merged.forbidden_extensions == frozenset()

    def test_immutable(self):
        with pytest.raises(Exception):
            DEFAULT_RULES.check_fees = False


class TestEvaluateMint:
    """Test evaluate_mint() verdicts and messages."""

    def test_account_not_found(self):
        verdict = evaluate_mint(MINT, None)

        assert verdict == Verdict(ok=False, message=ACCOUNT_NOT_FOUND)

    def test_clean_extended_mint(self, mint_factory):
        verdict = evaluate_mint(MINT, mint_factory())

        assert verdict.ok
        assert verdict.message == "no forbidden extensions found"

    def test_clean_legacy_mint(self, mint_factory):
        verdict = evaluate_mint(MINT, mint_factory(legacy=True))

        assert verdict.ok
        assert verdict.message == ""

    def test_forbidden_extensions_named_in_tag_order(self, mint_factory):
        record = mint_factory(extensions=[ExtensionType.TransferHook, ExtensionType.MintCloseAuthority])
        verdict = evaluate_mint(MINT, record)

        assert not verdict.ok
        assert verdict.message == "disallowed extensions found: MintCloseAuthority, TransferHook"

    def test_allowed_extension_passes(self, mint_factory):
        record = mint_factory(extensions=[ExtensionType.MetadataPointer, ExtensionType.TokenMetadata])

        assert evaluate_mint(MINT, record).ok

    def test_custom_forbidden_set(self, mint_factory):
        record = mint_factory(extensions=[ExtensionType.MetadataPointer])
        config = RuleConfiguration(forbidden_extensions=["MetadataPointer"])
        verdict = evaluate_mint(MINT, record, config)

        assert not verdict.ok
        assert verdict.message == "disallowed extensions found: MetadataPointer"

    def test_mint_authority_not_renounced(self, mint_factory):
        verdict = evaluate_mint(MINT, mint_factory(mint_authority=True))

        assert not verdict.ok
        assert verdict.message == "no forbidden extensions found | mint authority not renounced"

    def test_freeze_authority_present(self, mint_factory):
        verdict = evaluate_mint(MINT, mint_factory(legacy=True, freeze_authority=True))

        assert not verdict.ok
        assert verdict.message == "freeze authority present"

    def test_all_failures_in_order(self, mint_factory):
        record = mint_factory(
            mint_authority=True,
            freeze_authority=True,
            extensions=[ExtensionType.PermanentDelegate],
            fee_bps=900
        )
        config = RuleConfiguration(max_fee_basis_points=500)
        verdict = evaluate_mint(MINT, record, config)

        assert not verdict.ok
        assert verdict.message == (
            "disallowed extensions found: PermanentDelegate | fee bps 900 above max 500 | "
            "mint authority not renounced | freeze authority present"
        )

    def test_authority_checks_can_be_disabled(self, mint_factory):
        record = mint_factory(legacy=True, mint_authority=True, freeze_authority=True)
        config = RuleConfiguration(check_mint_renounced=False, check_freezable=False)

        assert evaluate_mint(MINT, record, config).ok

    def test_legacy_mint_skips_extension_and_fee_checks(self, mint_factory):
        config = RuleConfiguration(min_fee_basis_points=100)
        verdict = evaluate_mint(MINT, mint_factory(legacy=True), config)

        assert verdict.ok
        assert "extensions" not in verdict.message
        assert "fee" not in verdict.message

    def test_decode_error_is_failing_verdict(self):
        record = AccountRecord(data=bytes(100), owner=TOKEN_2022_PROGRAM_ID)
        verdict = evaluate_mint(MINT, record)

        assert not verdict.ok
        assert verdict.message.startswith("error unpacking mint: ")

    def test_short_legacy_data_is_failing_verdict(self):
        record = AccountRecord(data=bytes(10), owner=TOKEN_PROGRAM_ID)
        verdict = evaluate_mint(MINT, record)

        assert not verdict.ok
        assert verdict.message.startswith("error unpacking mint: ")

    def test_idempotent(self, mint_factory):
        record = mint_factory(mint_authority=True, extensions=[ExtensionType.TransferHook], fee_bps=50)
        config = RuleConfiguration(min_fee_basis_points=100)

        assert evaluate_mint(MINT, record, config) == evaluate_mint(MINT, record, config)


class TestTransferFeeRange:
    """Test fee boundaries."""

    CONFIG = RuleConfiguration(min_fee_basis_points=100, max_fee_basis_points=500)

    @pytest.mark.parametrize("fee_bps", [100, 250, 500])
    def test_fee_in_range_adds_no_line(self, mint_factory, fee_bps):
        verdict = evaluate_mint(MINT, mint_factory(fee_bps=fee_bps), self.CONFIG)

        assert verdict.ok
        assert verdict.message == "no forbidden extensions found"

    def test_fee_below_min(self, mint_factory):
        verdict = evaluate_mint(MINT, mint_factory(fee_bps=99), self.CONFIG)

        assert not verdict.ok
        assert verdict.message == "no forbidden extensions found | fee bps 99 below min 100"

    def test_fee_above_max(self, mint_factory):
        verdict = evaluate_mint(MINT, mint_factory(fee_bps=501), self.CONFIG)

        assert not verdict.ok
        assert verdict.message == "no forbidden extensions found | fee bps 501 above max 500"

    def test_fee_check_disabled(self, mint_factory):
        config = self.CONFIG.model_copy(update={"check_fees": False})

        assert evaluate_mint(MINT, mint_factory(fee_bps=9_000), config).ok

    def test_mint_without_fee_extension_passes_min(self, mint_factory):
        assert evaluate_mint(MINT, mint_factory(), self.CONFIG).ok


class TestMintRules:
    """Test rule classes against a check context."""

    def make_context(self, record, config=DEFAULT_RULES):
        return MintCheckContext(identifier=MINT, mint=decode_mint(MINT, record), config=config)

    def test_default_rule_order(self):
        names = [rule.name for rule in default_rules()]

        assert names == ["forbidden_extensions", "transfer_fee", "mint_authority", "freeze_authority"]
        assert default_rules() is default_rules()

    def test_extension_rule_not_applicable_to_legacy(self, mint_factory):
        context = self.make_context(mint_factory(legacy=True))

        assert not ForbiddenExtensionRule().is_applicable(context)
        assert not TransferFeeRule().is_applicable(context)
        assert MintAuthorityRule().is_applicable(context)
        assert FreezeAuthorityRule().is_applicable(context)

    def test_note_is_not_a_failure(self, mint_factory):
        context = self.make_context(mint_factory())

        assert ForbiddenExtensionRule().validate(context)
        assert not context.has_failures()
        assert context.to_verdict() == Verdict(ok=True, message="no forbidden extensions found")

    def test_disabled_rule_skipped(self, mint_factory):
        rule = MintAuthorityRule()
        rule.enabled = False
        record = mint_factory(mint_authority=True)

        assert evaluate_mint(MINT, record, rules=[rule]).ok

    def test_custom_rule(self, mint_factory):
        class SupplyCapRule(MintRule):
            def __init__(self):
                super().__init__("supply_cap", "Rejects mints above a supply cap")

            def validate(self, context: MintCheckContext) -> bool:
                if context.mint.authorities.supply > 10:
                    context.add_failure(self.name, "supply above cap")
                    return False
                return True

        verdict = evaluate_mint(MINT, mint_factory(supply=11), rules=[SupplyCapRule()])

        assert verdict == Verdict(ok=False, message="supply above cap")
