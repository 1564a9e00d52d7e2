"""
Payment gateway error codes mapped to customer-facing messages (Portuguese)
and structured payment logging
"""

import json
import logging
from datetime import datetime
from typing import Any, NamedTuple, Optional

logger = logging.getLogger(__name__)


class PaymentErrorInfo(NamedTuple):
    message: str
    action: str
    retryable: bool

    @property
    def user_message(self) -> str:
        return f"{self.message} {self.action}"


# Mercado Pago status_detail codes
MERCADOPAGO_ERROR_MESSAGES = {
    # Credit card
    "cc_rejected_bad_filled_card_number": PaymentErrorInfo(
        "O número do cartão está incorreto.",
        "Por favor, verifique o número do cartão e tente novamente.",
        True,
    ),
    "cc_rejected_bad_filled_date": PaymentErrorInfo(
        "A data de validade está incorreta.",
        "Verifique a data de validade do seu cartão e tente novamente.",
        True,
    ),
    "cc_rejected_bad_filled_other": PaymentErrorInfo(
        "Alguns dados do cartão estão incorretos.",
        "Revise os dados do cartão e tente novamente.",
        True,
    ),
    "cc_rejected_bad_filled_security_code": PaymentErrorInfo(
        "O código de segurança (CVV) está incorreto.",
        "Verifique o código de segurança no verso do cartão e tente novamente.",
        True,
    ),
    "cc_rejected_blacklist": PaymentErrorInfo(
        "O cartão não pode ser processado por motivos de segurança.",
        "Por favor, utilize outro cartão ou método de pagamento.",
        False,
    ),
    "cc_rejected_call_for_authorize": PaymentErrorInfo(
        "Seu cartão requer autorização prévia para esta compra.",
        "Entre em contato com seu banco para autorizar o pagamento e tente novamente.",
        True,
    ),
    "cc_rejected_card_disabled": PaymentErrorInfo(
        "Seu cartão está desabilitado para compras online.",
        "Entre em contato com seu banco para habilitar compras online ou use outro cartão.",
        True,
    ),
    "cc_rejected_card_error": PaymentErrorInfo(
        "Houve um erro ao processar o cartão.",
        "Por favor, tente novamente ou use outro cartão.",
        True,
    ),
    "cc_rejected_duplicated_payment": PaymentErrorInfo(
        "Pagamento duplicado detectado.",
        "Você já realizou um pagamento recentemente. Aguarde alguns minutos antes de tentar novamente.",
        False,
    ),
    "cc_rejected_high_risk": PaymentErrorInfo(
        "O pagamento foi recusado por medidas de segurança.",
        "Por favor, utilize outro cartão ou método de pagamento (PIX recomendado).",
        False,
    ),
    "cc_rejected_insufficient_amount": PaymentErrorInfo(
        "Seu cartão não possui limite suficiente.",
        "Verifique seu limite disponível ou use outro cartão.",
        True,
    ),
    "cc_rejected_invalid_installments": PaymentErrorInfo(
        "O número de parcelas selecionado não é permitido.",
        "Por favor, escolha um número diferente de parcelas.",
        True,
    ),
    "cc_rejected_max_attempts": PaymentErrorInfo(
        "Número máximo de tentativas excedido.",
        "Aguarde alguns minutos antes de tentar novamente ou use outro cartão.",
        True,
    ),
    "cc_rejected_other_reason": PaymentErrorInfo(
        "O pagamento foi recusado pelo banco emissor.",
        "Entre em contato com seu banco ou tente com outro cartão.",
        True,
    ),
    # General
    "pending_contingency": PaymentErrorInfo(
        "O pagamento está sendo processado.",
        "Aguarde a confirmação. Você receberá um e-mail quando for aprovado.",
        False,
    ),
    "pending_review_manual": PaymentErrorInfo(
        "O pagamento está em análise.",
        "Aguarde a análise. Você receberá um e-mail com o resultado.",
        False,
    ),
    "rejected_by_bank": PaymentErrorInfo(
        "O pagamento foi recusado pelo banco.",
        "Entre em contato com seu banco ou use outro método de pagamento.",
        True,
    ),
    "rejected_by_regulations": PaymentErrorInfo(
        "O pagamento não pôde ser processado por questões regulatórias.",
        "Por favor, use outro método de pagamento.",
        False,
    ),
    "rejected_insufficient_data": PaymentErrorInfo(
        "Dados insuficientes para processar o pagamento.",
        "Por favor, verifique todos os dados e tente novamente.",
        True,
    ),
    "default": PaymentErrorInfo(
        "Não foi possível processar o pagamento.",
        "Por favor, tente novamente ou use outro método de pagamento.",
        True,
    ),
}

_CONTACT_BANK = "Entre em contato com seu banco."
_OTHER_CARD = "Por favor, use outro cartão."

# Stripe decline_code values
STRIPE_ERROR_MESSAGES = {
    "authentication_required": PaymentErrorInfo(
        "Autenticação adicional necessária.",
        "Por favor, complete a autenticação 3D Secure solicitada pelo seu banco.",
        True,
    ),
    "approve_with_id": PaymentErrorInfo(
        "O pagamento requer aprovação adicional.",
        "Entre em contato com seu banco para aprovar a transação.",
        True,
    ),
    "call_issuer": PaymentErrorInfo(
        "Seu cartão foi recusado.", "Entre em contato com seu banco para mais informações.", True
    ),
    "card_not_supported": PaymentErrorInfo(
        "Este tipo de cartão não é aceito.", "Por favor, use um cartão diferente.", False
    ),
    "card_velocity_exceeded": PaymentErrorInfo(
        "Limite de transações excedido.", "Aguarde algumas horas ou use outro cartão.", True
    ),
    "currency_not_supported": PaymentErrorInfo(
        "A moeda não é suportada por este cartão.", _OTHER_CARD, False
    ),
    "do_not_honor": PaymentErrorInfo(
        "O cartão foi recusado.", "Entre em contato com seu banco ou use outro cartão.", True
    ),
    "do_not_try_again": PaymentErrorInfo(
        "O cartão foi recusado permanentemente.", "Por favor, use um cartão diferente.", False
    ),
    "duplicate_transaction": PaymentErrorInfo(
        "Transação duplicada detectada.", "Aguarde alguns minutos antes de tentar novamente.", False
    ),
    "expired_card": PaymentErrorInfo(
        "O cartão está vencido.", "Por favor, use um cartão válido.", False
    ),
    "fraudulent": PaymentErrorInfo(
        "O pagamento foi identificado como suspeito.",
        "Por favor, use outro método de pagamento.",
        False,
    ),
    "generic_decline": PaymentErrorInfo(
        "O cartão foi recusado.", "Entre em contato com seu banco ou tente outro cartão.", True
    ),
    "incorrect_cvc": PaymentErrorInfo(
        "O código de segurança (CVC) está incorreto.",
        "Verifique o código no verso do cartão e tente novamente.",
        True,
    ),
    "incorrect_number": PaymentErrorInfo(
        "O número do cartão está incorreto.",
        "Verifique o número do cartão e tente novamente.",
        True,
    ),
    "incorrect_zip": PaymentErrorInfo(
        "O CEP está incorreto.", "Verifique o CEP e tente novamente.", True
    ),
    "insufficient_funds": PaymentErrorInfo(
        "Saldo insuficiente.", "Verifique seu limite disponível ou use outro cartão.", True
    ),
    "invalid_account": PaymentErrorInfo("A conta do cartão é inválida.", _OTHER_CARD, False),
    "invalid_amount": PaymentErrorInfo(
        "O valor é inválido para este cartão.", _CONTACT_BANK, True
    ),
    "invalid_cvc": PaymentErrorInfo(
        "O código de segurança (CVC) é inválido.", "Verifique o código no verso do cartão.", True
    ),
    "invalid_expiry_month": PaymentErrorInfo(
        "O mês de validade é inválido.", "Verifique a data de validade do cartão.", True
    ),
    "invalid_expiry_year": PaymentErrorInfo(
        "O ano de validade é inválido.", "Verifique a data de validade do cartão.", True
    ),
    "invalid_number": PaymentErrorInfo(
        "O número do cartão é inválido.", "Verifique o número do cartão.", True
    ),
    "issuer_not_available": PaymentErrorInfo(
        "O banco emissor está indisponível.", "Tente novamente em alguns minutos.", True
    ),
    "lost_card": PaymentErrorInfo("O cartão foi reportado como perdido.", _OTHER_CARD, False),
    "merchant_blacklist": PaymentErrorInfo(
        "O cartão não pode ser usado nesta loja.", _OTHER_CARD, False
    ),
    "new_account_information_available": PaymentErrorInfo(
        "Informações atualizadas do cartão disponíveis.",
        "Entre em contato com seu banco para atualizar os dados.",
        True,
    ),
    "no_action_taken": PaymentErrorInfo(
        "Nenhuma ação foi tomada pelo banco.", _CONTACT_BANK, True
    ),
    "not_permitted": PaymentErrorInfo(
        "Este tipo de transação não é permitido.",
        "Entre em contato com seu banco ou use outro cartão.",
        True,
    ),
    "offline_pin_required": PaymentErrorInfo(
        "PIN necessário para esta transação.",
        "Use outro método de pagamento para compras online.",
        False,
    ),
    "online_or_offline_pin_required": PaymentErrorInfo(
        "PIN necessário.", "Use outro método de pagamento para compras online.", False
    ),
    "pickup_card": PaymentErrorInfo("O cartão foi bloqueado.", _CONTACT_BANK, False),
    "pin_try_exceeded": PaymentErrorInfo(
        "Número de tentativas de PIN excedido.", "Aguarde ou use outro cartão.", True
    ),
    "processing_error": PaymentErrorInfo(
        "Erro de processamento.", "Tente novamente em alguns segundos.", True
    ),
    "reenter_transaction": PaymentErrorInfo(
        "Por favor, tente novamente.", "Reinsira os dados do cartão.", True
    ),
    "restricted_card": PaymentErrorInfo(
        "O cartão tem restrições.", "Entre em contato com seu banco ou use outro cartão.", False
    ),
    "revocation_of_all_authorizations": PaymentErrorInfo(
        "Todas as autorizações foram revogadas.", _CONTACT_BANK, False
    ),
    "revocation_of_authorization": PaymentErrorInfo(
        "A autorização foi revogada.", _CONTACT_BANK, True
    ),
    "security_violation": PaymentErrorInfo(
        "Violação de segurança detectada.", "Use outro método de pagamento.", False
    ),
    "service_not_allowed": PaymentErrorInfo(
        "Este serviço não é permitido.", _CONTACT_BANK, False
    ),
    "stolen_card": PaymentErrorInfo("O cartão foi reportado como roubado.", _OTHER_CARD, False),
    "stop_payment_order": PaymentErrorInfo(
        "Ordem de suspensão de pagamento.", _CONTACT_BANK, False
    ),
    "testmode_decline": PaymentErrorInfo(
        "Cartão de teste recusado.", "Use um cartão válido.", False
    ),
    "transaction_not_allowed": PaymentErrorInfo(
        "Transação não permitida.", _CONTACT_BANK, True
    ),
    "try_again_later": PaymentErrorInfo(
        "Tente novamente mais tarde.", "Aguarde alguns minutos e tente novamente.", True
    ),
    "withdrawal_count_limit_exceeded": PaymentErrorInfo(
        "Limite de saques excedido.", "Aguarde ou use outro cartão.", True
    ),
    "default": PaymentErrorInfo(
        "O pagamento foi recusado.", "Por favor, tente novamente ou use outro cartão.", True
    ),
}


def get_mercadopago_error_message(status_detail: Optional[str]) -> PaymentErrorInfo:
    if not status_detail:
        return MERCADOPAGO_ERROR_MESSAGES["default"]
    return MERCADOPAGO_ERROR_MESSAGES.get(status_detail, MERCADOPAGO_ERROR_MESSAGES["default"])


def get_stripe_error_message(decline_code: Optional[str]) -> PaymentErrorInfo:
    if not decline_code:
        return STRIPE_ERROR_MESSAGES["default"]
    return STRIPE_ERROR_MESSAGES.get(decline_code, STRIPE_ERROR_MESSAGES["default"])


def _reais(cents: int) -> str:
    return f"{(cents or 0) / 100:.2f}"


def log_payment_error(
    gateway: str,
    payment_id: str,
    email: str,
    amount: int,
    method: str,
    error_code: str,
    error_message: str,
    gateway_response: Optional[Any] = None,
) -> None:
    """Structured failure entry plus a one-line summary that is easy to grep"""
    timestamp = datetime.utcnow().isoformat()
    entry = {
        "timestamp": timestamp,
        "level": "ERROR",
        "type": "PAYMENT_FAILURE",
        "gateway": gateway,
        "payment_id": payment_id,
        "email": email,
        "amount": amount,
        "method": method,
        "error_code": error_code,
        "error_message": error_message,
        "gateway_response": gateway_response,
    }
    logger.error(f"[PAYMENT_FAILURE] {timestamp} {json.dumps(entry, default=str, ensure_ascii=False)}")
    logger.error(
        f"[PAYMENT_DECLINED] Gateway: {gateway} | Email: {email} | Valor: R$ {_reais(amount)} | "
        f"Método: {method} | Código: {error_code} | Motivo: {error_message}"
    )


def log_payment_success(
    gateway: str, payment_id: str, email: str, amount: int, method: str, external_id: str
) -> None:
    timestamp = datetime.utcnow().isoformat()
    logger.info(
        f"[PAYMENT_SUCCESS] {timestamp} | Gateway: {gateway} | Email: {email} | "
        f"Valor: R$ {_reais(amount)} | Método: {method} | ID Externo: {external_id}"
    )
