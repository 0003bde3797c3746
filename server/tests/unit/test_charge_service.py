from __future__ import annotations
import httpx
import pytest

pytestmark = pytest.mark.unit


def _request(**overrides):
    from pixoverlay.api.schemas.charges import ChargeRequest

    data = {"payer_name": "Maria", "amount": "10,00", "email": "maria@example.com", "message": "boa live"}
    data.update(overrides)
    return ChargeRequest(**data)


@pytest.fixture
def service(api_client, clock):
    from pixoverlay.application.services.charge_queue_service import ChargeQueue
    from pixoverlay.application.services.charge_service import ChargeService

    return ChargeService(api_client, ChargeQueue(), clock)


def test_successful_creation_enqueues_and_activates(service, pix_backend, run):
    result = run(service.create_charge(_request()))

    assert result.warning is None
    assert result.charge.payment_id == 42
    assert result.charge.status == "PENDING"
    assert result.charge.qr_text == "00020126..."
    assert result.charge.qr_image_src == "data:image/png;base64,iVBORw0KGgo="
    assert service.queue.active_payment_id == 42

    sent = pix_backend.last_json()
    assert sent == {"nome": "Maria", "valor": 10.0, "email": "maria@example.com", "mensagem": "boa live"}
    assert pix_backend.requests[-1].url.path == "/pix/cobrar"


def test_missing_status_defaults_to_pending(service, pix_backend, run):
    pix_backend.body = {"paymentId": 5, "qrCodeBase64": "AAA"}
    result = run(service.create_charge(_request()))
    assert result.charge.status == "PENDING"


def test_missing_qr_image_is_a_warning_not_an_error(service, pix_backend, run):
    from pixoverlay.application.services.charge_service import WARNING_NO_QR_IMAGE

    pix_backend.body = {"paymentId": 8, "qrCode": "000201"}
    result = run(service.create_charge(_request()))
    assert result.warning == WARNING_NO_QR_IMAGE
    assert result.charge.qr_image_src is None
    assert len(service.queue) == 1


def test_http_error_leaves_queue_untouched(service, pix_backend, run):
    from pixoverlay.application.services.charge_service import ChargeCreationError

    pix_backend.status_code = 500
    pix_backend.body = "boom"
    with pytest.raises(ChargeCreationError) as ei:
        run(service.create_charge(_request()))
    assert ei.value.status_code == 500
    assert "HTTP 500" in ei.value.message
    assert "boom" in ei.value.message
    assert len(service.queue) == 0


def test_network_error(service, pix_backend, run):
    from pixoverlay.application.services.charge_service import ChargeCreationError

    pix_backend.raise_exc = httpx.ConnectError("refused")
    with pytest.raises(ChargeCreationError) as ei:
        run(service.create_charge(_request()))
    assert ei.value.message == "API Pix indisponível, tente novamente."
    assert len(service.queue) == 0


@pytest.mark.parametrize("body", ["<html>oops</html>", {"status": "PENDING"}, {"paymentId": "abc"}])
def test_invalid_response_body(service, pix_backend, run, body):
    from pixoverlay.application.services.charge_service import ChargeCreationError

    pix_backend.body = body
    with pytest.raises(ChargeCreationError) as ei:
        run(service.create_charge(_request()))
    assert ei.value.message == "Resposta inválida do backend Pix."
    assert len(service.queue) == 0


# --- Validation du formulaire --------------------------------------------------

@pytest.mark.parametrize(
    "raw,expected",
    [("10,00", 10.0), ("1.234,56", 1234.56), (12.5, 12.5), ("7", 7.0), (" 3,5 ", 3.5)],
)
def test_brl_amount_parsing(raw, expected):
    from pixoverlay.api.schemas.charges import parse_brl_amount

    assert parse_brl_amount(raw) == expected


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"payer_name": "   "}, "Informe o nome."),
        ({"email": "sem-arroba"}, "Informe um e-mail válido."),
        ({"amount": "abc"}, "Informe um valor válido (ex: 10,00)."),
        ({"amount": "0"}, "Informe um valor válido (ex: 10,00)."),
        ({"amount": -3}, "Informe um valor válido (ex: 10,00)."),
    ],
)
def test_request_validation_messages(overrides, message):
    from pydantic import ValidationError

    with pytest.raises(ValidationError) as ei:
        _request(**overrides)
    assert message in str(ei.value)


def test_request_length_limits_and_blank_message():
    from pydantic import ValidationError

    with pytest.raises(ValidationError):
        _request(payer_name="x" * 61)
    with pytest.raises(ValidationError):
        _request(message="x" * 141)

    req = _request(message="   ")
    assert req.message is None
    assert "mensagem" not in req.to_backend_payload()
