"""
MJML Email Templates
Built-in transactional emails (Portuguese) used when no database override is active
"""

from typing import NamedTuple, Optional

from .config import APP_NAME
from .utils.sanitization import sanitize_string

# App theme colors - Violet color scheme
THEME = {
    "primary": "#7c3aed",
    "primary_dark": "#6d28d9",
    "primary_light": "#ede9fe",
    "background": "#f4f4f5",
    "card_bg": "#ffffff",
    "text_primary": "#18181b",
    "text_secondary": "#3f3f46",
    "text_muted": "#71717a",
    "border": "#e4e4e7",
    "success": "#16a34a",
    "warning": "#f59e0b",
    "danger": "#dc2626",
}

# Placeholders each notification type exposes to admin-edited templates
NOTIFICATION_PLACEHOLDERS = {
    "welcome": ["name", "email", "appName", "adminUrl", "loginUrl"],
    "credentials": ["name", "email", "tempPassword", "planName", "loginUrl", "appName"],
    "password_reset": ["name", "resetUrl", "appName"],
    "plan_expired": ["name", "planName", "renewUrl", "appName"],
    "payment_failed": ["name", "planName", "reason", "paymentUrl", "appName"],
    "payment_confirmed": ["name", "planName", "expirationDate", "loginUrl", "appName"],
}


class EmailContent(NamedTuple):
    subject: str
    mjml: str
    text: str


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    header_color: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section background-color="#ffffff" padding="0 40px 32px 40px">
          <mj-column>
            <mj-button
              href="{sanitize_string(cta_url)}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="6px"
              padding="8px 0"
              inner-padding="14px 36px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{header_color or THEME['primary']}" padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="22px" font-weight="600" color="#ffffff" padding="0">
              {title}
            </mj-text>
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="32px 40px 16px 40px">
          <mj-column>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="24px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="{THEME['text_muted']}" padding="0">
              {APP_NAME} - Webinarios Automatizados
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _greeting(name: str) -> str:
    return f"<mj-text>Olá {sanitize_string(name)},</mj-text>"


def _info_box(rows: list[tuple[str, str]]) -> str:
    """Highlighted key/value block (credentials, amounts)"""
    lines = "<br/>".join(
        f"<strong>{label}:</strong> {sanitize_string(value)}" for label, value in rows
    )
    return f"""
    <mj-text container-background-color="{THEME['primary_light']}" padding="16px 20px">
      {lines}
    </mj-text>
    """


def welcome_email_template(name: str, admin_url: str) -> EmailContent:
    """Welcome email after account creation"""
    content = f"""
    {_greeting(name)}
    <mj-text>Sua conta foi criada com sucesso no {APP_NAME}!</mj-text>
    <mj-text>
      Agora você tem acesso a todos os recursos da plataforma de webinários automatizados:
    </mj-text>
    <mj-text padding-left="40px">
      • Criar webinários automatizados que rodam 24/7<br/>
      • Capturar leads automaticamente<br/>
      • Enviar mensagens de email e WhatsApp
    </mj-text>
    <mj-text>Se tiver qualquer dúvida, estamos aqui para ajudar!</mj-text>
    """
    text = (
        f"Olá {name},\n\n"
        f"Sua conta foi criada com sucesso no {APP_NAME}!\n\n"
        f"Acesse sua conta: {admin_url}\n\n"
        f"Se tiver qualquer dúvida, estamos aqui para ajudar!\n\n---\n{APP_NAME}"
    )
    return EmailContent(
        subject=f"Bem-vindo ao {APP_NAME}",
        mjml=get_base_template(
            title=f"Bem-vindo ao {APP_NAME}!",
            preview_text="Sua conta foi criada com sucesso",
            content_sections=content,
            cta_url=admin_url,
            cta_label="Acessar minha conta",
        ),
        text=text,
    )


def credentials_email_template(
    name: str, email: str, temp_password: str, plan_name: str, login_url: str
) -> EmailContent:
    content = f"""
    {_greeting(name)}
    <mj-text>Seu acesso ao {APP_NAME} foi liberado com sucesso! Aqui estão suas credenciais:</mj-text>
    {_info_box([("E-mail", email), ("Senha", temp_password), ("Plano", plan_name)])}
    <mj-text color="{THEME['danger']}" font-size="14px">
      IMPORTANTE: Por segurança, altere sua senha após o primeiro login.
    </mj-text>
    """
    text = (
        f"Olá {name},\n\n"
        f"Seu acesso ao {APP_NAME} foi liberado com sucesso!\n\n"
        f"E-mail: {email}\nSenha: {temp_password}\nPlano: {plan_name}\n\n"
        f"Acesse sua conta agora: {login_url}\n\n"
        "IMPORTANTE: Por segurança, recomendamos que você altere sua senha após o primeiro login.\n\n"
        f"---\n{APP_NAME}"
    )
    return EmailContent(
        subject=f"Seu acesso ao {APP_NAME} foi liberado!",
        mjml=get_base_template(
            title="Seu acesso foi liberado!",
            preview_text="Suas credenciais de acesso",
            content_sections=content,
            cta_url=login_url,
            cta_label="Fazer login",
        ),
        text=text,
    )


def password_reset_template(name: str, reset_url: str) -> EmailContent:
    content = f"""
    {_greeting(name)}
    <mj-text>Recebemos uma solicitação para redefinir a senha da sua conta.</mj-text>
    <mj-text>Clique no botão abaixo para criar uma nova senha. Este link expira em 1 hora.</mj-text>
    <mj-text font-size="14px" color="{THEME['text_muted']}">
      Se você não solicitou a redefinição, ignore este email.
    </mj-text>
    """
    text = (
        f"Olá {name},\n\n"
        "Recebemos uma solicitação para redefinir a senha da sua conta.\n\n"
        f"Acesse o link abaixo para criar uma nova senha (expira em 1 hora):\n{reset_url}\n\n"
        "Se você não solicitou a redefinição, ignore este email.\n\n"
        f"---\n{APP_NAME}"
    )
    return EmailContent(
        subject=f"Recuperação de Senha - {APP_NAME}",
        mjml=get_base_template(
            title="Recuperação de Senha",
            preview_text="Redefina sua senha",
            content_sections=content,
            cta_url=reset_url,
            cta_label="Redefinir senha",
        ),
        text=text,
    )


def plan_expired_template(name: str, plan_name: str, renew_url: str) -> EmailContent:
    content = f"""
    {_greeting(name)}
    <mj-text>
      Seu plano <strong>{sanitize_string(plan_name)}</strong> expirou e o acesso à plataforma foi suspenso.
    </mj-text>
    <mj-text>Seus dados e webinários estão seguros. Renove agora para continuar usando o {APP_NAME}.</mj-text>
    """
    text = (
        f"Olá {name},\n\n"
        f"Seu plano {plan_name} expirou e o acesso à plataforma foi suspenso.\n\n"
        f"Renove agora: {renew_url}\n\n---\n{APP_NAME}"
    )
    return EmailContent(
        subject=f"Seu plano expirou - {APP_NAME}",
        mjml=get_base_template(
            title="Seu plano expirou",
            preview_text="Renove para continuar usando a plataforma",
            content_sections=content,
            cta_url=renew_url,
            cta_label="Renovar agora",
            header_color=THEME["warning"],
        ),
        text=text,
    )


def payment_failed_template(
    name: str, plan_name: str, reason: str, payment_url: str
) -> EmailContent:
    content = f"""
    {_greeting(name)}
    <mj-text>
      A renovação do seu plano <strong>{sanitize_string(plan_name)}</strong> não foi aprovada
      e seu acesso foi temporariamente suspenso.
    </mj-text>
    {_info_box([("Motivo", reason)])}
    <mj-text>
      Seus dados e webinários estão seguros. Assim que regularizar o pagamento,
      seu acesso será reativado automaticamente.
    </mj-text>
    """
    text = (
        f"Olá {name},\n\n"
        f"A renovação do seu plano {plan_name} não foi aprovada e seu acesso foi temporariamente suspenso.\n\n"
        f"Motivo: {reason}\n\n"
        f"Regularize o pagamento: {payment_url}\n\n---\n{APP_NAME}"
    )
    return EmailContent(
        subject=f"Ação necessária: pagamento não aprovado - {APP_NAME}",
        mjml=get_base_template(
            title="Pagamento não aprovado",
            preview_text="Regularize seu pagamento para reativar o acesso",
            content_sections=content,
            cta_url=payment_url,
            cta_label="Atualizar pagamento",
            header_color=THEME["danger"],
        ),
        text=text,
    )


def payment_confirmed_template(
    name: str, plan_name: str, expiration_date: str, login_url: str
) -> EmailContent:
    content = f"""
    {_greeting(name)}
    <mj-text>Recebemos seu pagamento. Obrigado!</mj-text>
    {_info_box([("Plano", plan_name), ("Acesso válido até", expiration_date)])}
    """
    text = (
        f"Olá {name},\n\n"
        "Recebemos seu pagamento. Obrigado!\n\n"
        f"Plano: {plan_name}\nAcesso válido até: {expiration_date}\n\n"
        f"Acesse: {login_url}\n\n---\n{APP_NAME}"
    )
    return EmailContent(
        subject=f"Pagamento confirmado - {APP_NAME}",
        mjml=get_base_template(
            title="Pagamento confirmado!",
            preview_text=f"Seu plano {plan_name} está ativo",
            content_sections=content,
            cta_url=login_url,
            cta_label="Acessar plataforma",
            header_color=THEME["success"],
        ),
        text=text,
    )


PAYMENT_METHOD_LABELS = {
    "pix": "PIX",
    "boleto": "Boleto",
    "credit_card": "Cartão de Crédito",
}


def payment_pending_template(
    name: str, plan_name: str, payment_method: str, checkout_url: str
) -> EmailContent:
    method_label = PAYMENT_METHOD_LABELS.get(payment_method, payment_method)
    content = f"""
    {_greeting(name)}
    <mj-text>Recebemos seu pedido e o pagamento está em análise.</mj-text>
    {_info_box([("Plano", plan_name), ("Forma de pagamento", method_label)])}
    <mj-text>Assim que o pagamento for confirmado, você receberá seus dados de acesso.</mj-text>
    """
    text = (
        f"Olá {name},\n\n"
        "Recebemos seu pedido e o pagamento está em análise.\n\n"
        f"Plano: {plan_name}\nForma de pagamento: {method_label}\n\n"
        f"Acompanhe em: {checkout_url}\n\n---\n{APP_NAME}"
    )
    return EmailContent(
        subject=f"Pagamento em análise - {plan_name} - {APP_NAME}",
        mjml=get_base_template(
            title="Pagamento em análise",
            preview_text="Estamos aguardando a confirmação do pagamento",
            content_sections=content,
            cta_url=checkout_url,
            cta_label="Ver meu pedido",
        ),
        text=text,
    )


def pix_expired_recovery_template(
    name: str, plan_name: str, amount: str, checkout_url: str
) -> EmailContent:
    """Recovery email for an abandoned PIX charge"""
    content = f"""
    {_greeting(name)}
    <mj-text>Seu PIX para o plano <strong>{sanitize_string(plan_name)}</strong> expirou!</mj-text>
    {_info_box([("Valor", amount)])}
    <mj-text>Não se preocupe! Você ainda pode finalizar sua compra gerando um novo PIX ou escolhendo outra forma de pagamento:</mj-text>
    <mj-text padding-left="40px">
      • PIX: aprovação instantânea<br/>
      • Boleto: vencimento em 3 dias úteis<br/>
      • Cartão de Crédito: parcelado em até 12x
    </mj-text>
    """
    text = (
        f"Olá {name},\n\n"
        f"Seu PIX para o plano {plan_name} expirou!\n\n"
        f"Valor: {amount}\n\n"
        "Não se preocupe! Você ainda pode finalizar sua compra.\n\n"
        f"Clique no link abaixo para gerar um novo PIX ou escolher outra forma de pagamento:\n{checkout_url}\n\n"
        f"---\n{APP_NAME}"
    )
    return EmailContent(
        subject=f"Seu PIX expirou - Finalize sua compra do {plan_name}",
        mjml=get_base_template(
            title="Seu PIX expirou",
            preview_text="Finalize sua compra em poucos cliques",
            content_sections=content,
            cta_url=checkout_url,
            cta_label="Finalizar compra",
            header_color=THEME["warning"],
        ),
        text=text,
    )


def expiration_reminder_template(
    name: str, plan_name: str, time_label: str, expiration_date: str, renew_url: str
) -> EmailContent:
    """
    Reminder before access expires.

    ``time_label`` is the human urgency fragment ("amanhã", "em 3 dias",
    "em 6 horas").
    """
    headline = f"Seu plano vence {time_label}!"
    content = f"""
    {_greeting(name)}
    <mj-text>
      Seu plano <strong>{sanitize_string(plan_name)}</strong> vence {time_label}
      ({sanitize_string(expiration_date)}).
    </mj-text>
    <mj-text>Renove agora para não perder o acesso aos seus webinários.</mj-text>
    """
    text = (
        f"Olá {name},\n\n"
        f"Seu plano {plan_name} vence {time_label} ({expiration_date}).\n\n"
        f"Renove agora: {renew_url}\n\n---\n{APP_NAME}"
    )
    return EmailContent(
        subject=f"{headline} - {APP_NAME}",
        mjml=get_base_template(
            title=headline,
            preview_text="Renove para manter seu acesso",
            content_sections=content,
            cta_url=renew_url,
            cta_label="Renovar agora",
            header_color=THEME["warning"],
        ),
        text=text,
    )


def expired_renewal_template(name: str, plan_name: str, renew_url: str) -> EmailContent:
    content = f"""
    {_greeting(name)}
    <mj-text>
      Seu plano <strong>{sanitize_string(plan_name)}</strong> venceu. Seus webinários foram pausados,
      mas todos os dados continuam salvos.
    </mj-text>
    <mj-text>Renove agora e volte a vender no automático.</mj-text>
    """
    text = (
        f"Olá {name},\n\n"
        f"Seu plano {plan_name} venceu. Seus webinários foram pausados, mas todos os dados continuam salvos.\n\n"
        f"Renove agora: {renew_url}\n\n---\n{APP_NAME}"
    )
    return EmailContent(
        subject=f"Seu plano venceu - Renove agora - {APP_NAME}",
        mjml=get_base_template(
            title="Seu plano venceu",
            preview_text="Renove para reativar seus webinários",
            content_sections=content,
            cta_url=renew_url,
            cta_label="Renovar agora",
            header_color=THEME["danger"],
        ),
        text=text,
    )


def affiliate_sale_template(
    name: str, sale_amount: str, commission_amount: str, dashboard_url: str
) -> EmailContent:
    content = f"""
    {_greeting(name)}
    <mj-text>Você acaba de fazer uma nova venda! Parabéns!</mj-text>
    {_info_box([("Valor da venda", sale_amount), ("Sua comissão", commission_amount)])}
    """
    text = (
        f"Olá {name},\n\n"
        "Você acaba de fazer uma nova venda! Parabéns!\n\n"
        f"Valor da venda: {sale_amount}\nSua comissão: {commission_amount}\n\n"
        f"Acompanhe no painel: {dashboard_url}\n\n---\n{APP_NAME}"
    )
    return EmailContent(
        subject=f"Nova venda: {commission_amount} de comissão - {APP_NAME}",
        mjml=get_base_template(
            title="Nova venda realizada!",
            preview_text=f"Comissão de {commission_amount}",
            content_sections=content,
            cta_url=dashboard_url,
            cta_label="Ver painel de afiliado",
            header_color=THEME["success"],
        ),
        text=text,
    )


def sample_email_template() -> EmailContent:
    content = f"""
    <mj-text>Este é um email de teste enviado pelo painel do {APP_NAME}.</mj-text>
    <mj-text>Se você recebeu esta mensagem, o envio de emails está funcionando.</mj-text>
    """
    return EmailContent(
        subject=f"Email de teste - {APP_NAME}",
        mjml=get_base_template(
            title="Email de teste",
            preview_text="O envio de emails está funcionando",
            content_sections=content,
        ),
        text=f"Este é um email de teste enviado pelo painel do {APP_NAME}.",
    )
