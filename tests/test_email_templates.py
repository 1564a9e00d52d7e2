"""
Tests for the built-in MJML email templates.
"""
from app.email_templates import (
    NOTIFICATION_PLACEHOLDERS,
    credentials_email_template,
    expiration_reminder_template,
    get_base_template,
    payment_pending_template,
    pix_expired_recovery_template,
)


class TestBaseTemplate:
    def test_cta_rendered_only_with_url_and_label(self) -> None:
        with_cta = get_base_template("Titulo", "Preview", "<mj-text>x</mj-text>", "https://a.test", "Ir")
        without_cta = get_base_template("Titulo", "Preview", "<mj-text>x</mj-text>", "https://a.test")

        assert "<mj-button" in with_cta
        assert "<mj-button" not in without_cta

    def test_cta_url_is_attribute_escaped(self) -> None:
        mjml = get_base_template("T", "P", "", "https://a.test/checkout?email=a&nome=b", "Ir")
        assert 'href="https://a.test/checkout?email=a&amp;nome=b"' in mjml


class TestTemplates:
    def test_pix_recovery(self) -> None:
        content = pix_expired_recovery_template(
            "Ana", "Plano Mensal", "R$ 97,00", "https://app.test/checkout/1"
        )

        assert content.subject == "Seu PIX expirou - Finalize sua compra do Plano Mensal"
        assert "R$ 97,00" in content.mjml
        assert "https://app.test/checkout/1" in content.text

    def test_credentials_contain_login_data(self) -> None:
        content = credentials_email_template(
            "Ana", "ana@exemplo.com", "Xk9mP2qL", "Plano Mensal", "https://app.test/login"
        )

        for value in ("ana@exemplo.com", "Xk9mP2qL", "Plano Mensal"):
            assert value in content.mjml
            assert value in content.text

    def test_user_values_are_escaped_in_mjml(self) -> None:
        content = pix_expired_recovery_template(
            "<script>x</script>", "Plano", "R$ 1,00", "https://app.test"
        )

        assert "<script>" not in content.mjml
        assert "&lt;script&gt;" in content.mjml

    def test_reminder_uses_time_label(self) -> None:
        content = expiration_reminder_template(
            "Ana", "Plano Diário", "em 6 horas", "05/03/2026", "https://app.test/checkout"
        )
        assert content.subject.startswith("Seu plano vence em 6 horas!")

    def test_pending_payment_method_label(self) -> None:
        content = payment_pending_template("Ana", "Plano", "credit_card", "https://app.test")
        assert "Cartão de Crédito" in content.mjml

    def test_placeholder_catalog_covers_overridable_types(self) -> None:
        assert set(NOTIFICATION_PLACEHOLDERS) == {
            "welcome",
            "credentials",
            "password_reset",
            "plan_expired",
            "payment_failed",
            "payment_confirmed",
        }
