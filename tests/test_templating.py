"""
Tests for placeholder substitution, formatting and link helpers.
"""
from datetime import datetime
from urllib.parse import parse_qs, urlparse

import pytest

from app.shared.validators import normalize_br_phone, validate_cpf, validate_email
from app.utils.formatting import format_brl, format_date_br
from app.utils.links import build_checkout_url, reset_password_url
from app.utils.templating import replace_placeholders


class TestReplacePlaceholders:
    def test_replaces_every_occurrence(self) -> None:
        result = replace_placeholders("{name}, {name}! Plano {planName}", {"name": "Ana", "planName": "Pro"})
        assert result == "Ana, Ana! Plano Pro"

    def test_missing_value_becomes_empty_string(self) -> None:
        assert replace_placeholders("Motivo: {reason}.", {"reason": None}) == "Motivo: ."

    def test_unknown_placeholder_is_left_untouched(self) -> None:
        assert replace_placeholders("Oi {nome}", {"name": "Ana"}) == "Oi {nome}"

    def test_empty_template_returns_empty_string(self) -> None:
        assert replace_placeholders(None, {"name": "Ana"}) == ""
        assert replace_placeholders("", {"name": "Ana"}) == ""

    def test_case_sensitive_by_default(self) -> None:
        assert replace_placeholders("{Name}", {"name": "Ana"}) == "{Name}"

    def test_ignore_case(self) -> None:
        assert replace_placeholders("{NAME} {Name}", {"name": "Ana"}, ignore_case=True) == "Ana Ana"

    def test_values_are_not_reinterpreted(self) -> None:
        """Backslashes and group references in values are inserted literally."""
        result = replace_placeholders("Senha: {tempPassword}", {"tempPassword": r"a\1b\g<0>"})
        assert result == r"Senha: a\1b\g<0>"

    def test_placeholders_inside_values_are_not_expanded(self) -> None:
        values = {"name": "{tempPassword}", "tempPassword": "Xk9mP2qL"}

        result = replace_placeholders("Oi {name}, senha {tempPassword}", values)

        assert result == "Oi {tempPassword}, senha Xk9mP2qL"

    def test_placeholders_inside_values_are_not_expanded_ignoring_case(self) -> None:
        result = replace_placeholders("{Name}: {planName}", {"name": "{PLANNAME}", "planName": "Pro"}, ignore_case=True)
        assert result == "{PLANNAME}: Pro"

    def test_non_string_values_are_stringified(self) -> None:
        assert replace_placeholders("{amount}", {"amount": 97}) == "97"


class TestFormatting:
    @pytest.mark.parametrize(
        "cents, expected",
        [(9700, "R$ 97,00"), (123456, "R$ 1.234,56"), (0, "R$ 0,00"), (None, "R$ 0,00")],
    )
    def test_format_brl(self, cents, expected) -> None:
        assert format_brl(cents) == expected

    def test_dates(self) -> None:
        value = datetime(2026, 3, 5, 14, 30)
        assert format_date_br(value) == "05/03/2026"
        assert format_date_br(None) == ""


class TestLinks:
    def test_checkout_url_prefills_buyer(self) -> None:
        url = build_checkout_url(7, "ana@exemplo.com", "Ana Souza")
        parsed = urlparse(url)

        assert parsed.path == "/checkout/7"
        assert parse_qs(parsed.query) == {
            "email": ["ana@exemplo.com"],
            "nome": ["Ana Souza"],
            "recuperacao": ["true"],
        }

    def test_checkout_url_without_plan(self) -> None:
        url = build_checkout_url(None, "ana@exemplo.com", "Ana", flag="renovacao")
        assert urlparse(url).path == "/checkout"
        assert "renovacao=true" in url

    def test_reset_url_encodes_token(self) -> None:
        assert reset_password_url("a b").endswith("/reset-password?token=a+b")


class TestValidators:
    def test_normalize_phone(self) -> None:
        assert normalize_br_phone("(11) 98765-4321") == "5511987654321"
        assert normalize_br_phone("+55 11 98765-4321") == "5511987654321"
        assert normalize_br_phone("---") is None
        assert normalize_br_phone(None) is None

    def test_valid_cpf(self) -> None:
        assert validate_cpf("529.982.247-25") == "52998224725"

    @pytest.mark.parametrize("cpf", ["111.111.111-11", "529.982.247-24", "123"])
    def test_invalid_cpf(self, cpf) -> None:
        with pytest.raises(ValueError, match="CPF inválido"):
            validate_cpf(cpf)

    def test_email_is_lowercased(self) -> None:
        assert validate_email("  Ana@Exemplo.COM ") == "ana@exemplo.com"
        with pytest.raises(ValueError):
            validate_email("not-an-email")
