import json
import logging

from django.core.paginator import Paginator
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from rewards.services import get_balance

from .config import GatewayConfig
from .entitlements import coins_for_order
from .exceptions import AlreadyProcessed, InvalidRequest, NotFound, PaymentError, Unauthorized
from .models import PaymentOrder
from .repository import DjangoOrderRepository
from .services import order_creation_service, payment_verification_service
from .utils import verify_webhook_signature

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("payments.security")

CAPTURE_EVENTS = {"payment.captured", "order.paid"}


def _json_body(request):
    try: return json.loads(request.body.decode("utf-8"))
    except Exception: return None


def _error(exc: PaymentError):
    return JsonResponse({"success": False, "error": exc.client_message}, status=exc.status_code)


def _server_error():
    return JsonResponse({"success": False, "error": "Internal server error"}, status=500)


def _entity(entities, name) -> dict:
    """``payload.<name>.entity`` from a webhook body, or ``{}`` when any level is not an object."""
    wrapper = entities.get(name) if isinstance(entities, dict) else None
    entity = wrapper.get("entity") if isinstance(wrapper, dict) else None
    return entity if isinstance(entity, dict) else {}


def _order_detail(order: PaymentOrder) -> dict:
    return {
        **order.summary(),
        "status": order.status,
        "payment_id": order.payment_id,
        "coins": coins_for_order(order),
        "entitlement_pending": order.entitlement_pending,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "verified_at": order.verified_at.isoformat() if order.verified_at else None,
    }


@require_http_methods(["GET", "POST"])
def orders_view(request):
    if request.method == "POST":
        return create_order_view(request)
    return my_orders_view(request)


def create_order_view(request):
    if not request.user.is_authenticated:
        return _error(Unauthorized())
    body = _json_body(request)
    if not isinstance(body, dict):
        return _error(InvalidRequest("Invalid JSON body"))

    try:
        order = order_creation_service().create(
            request.user,
            amount=body.get("amount"),
            currency=body.get("currency"),
            receipt=body.get("receipt"),
            notes=body.get("notes"),
        )
    except PaymentError as e:
        return _error(e)
    except Exception:
        logger.exception("Create order crashed for user=%s", request.user.pk)
        return _server_error()

    return JsonResponse({"success": True, "order": order.summary()})


@require_POST
def verify_payment_view(request):
    if not request.user.is_authenticated:
        return _error(Unauthorized())
    body = _json_body(request)
    if not isinstance(body, dict):
        return _error(InvalidRequest("Invalid JSON body"))

    # Accept the field names Razorpay Checkout hands to the client as-is
    order_id = body.get("order_id") or body.get("razorpay_order_id")
    payment_id = body.get("payment_id") or body.get("razorpay_payment_id")
    signature = body.get("signature") or body.get("razorpay_signature")

    try:
        result = payment_verification_service().verify(
            order_id=order_id, payment_id=payment_id, signature=signature, user=request.user,
        )
    except AlreadyProcessed as e:
        return JsonResponse({
            "success": e.order.is_paid,
            "already_processed": True,
            "status": e.order.status,
            "message": e.public_message,
        })
    except PaymentError as e:
        return _error(e)
    except Exception:
        logger.exception("Verify payment crashed for order=%s", order_id)
        return _server_error()

    return JsonResponse({
        "success": True,
        "already_processed": False,
        "status": result.order.status,
        "coins_added": result.coins_added,
        "entitlement_pending": result.entitlement_pending,
        "new_balance": get_balance(request.user.pk),
        "message": "Payment verified successfully",
    })


@csrf_exempt
@require_POST
def razorpay_webhook(request):
    """
    Razorpay server-to-server notifications.
    Authenticated by ``X-Razorpay-Signature`` over the raw body; a bad
    signature changes nothing. Capture events converge on the same
    conditional transition as the client callback.
    """
    config = GatewayConfig.from_settings()
    signature = request.headers.get("X-Razorpay-Signature", "")
    if not verify_webhook_signature(request.body, signature, config.webhook_secret):
        security_logger.warning("Rejected webhook with bad signature from %s", request.META.get("REMOTE_ADDR"))
        return JsonResponse({"success": False, "error": "Invalid signature"}, status=400)

    payload = _json_body(request)
    if not isinstance(payload, dict):
        return JsonResponse({"success": False, "error": "Invalid JSON"}, status=400)

    event = str(payload.get("event") or "")
    entities = payload.get("payload")
    payment = _entity(entities, "payment")
    order_id = str(payment.get("order_id") or _entity(entities, "order").get("id") or "")

    if event not in CAPTURE_EVENTS:
        # payment.failed is not terminal for the order: the payer may retry on it
        logger.info("Acknowledged webhook event=%s order=%s without state change", event, order_id)
        return JsonResponse({"success": True, "status": "ignored"}, status=202)

    try:
        result = payment_verification_service(config).confirm_captured(
            order_id=order_id,
            payment_id=str(payment.get("id") or ""),
            amount=payment.get("amount"),
            currency=payment.get("currency"),
            source="webhook",
            payload=payload,
        )
    except NotFound:
        logger.warning("Webhook event=%s for unknown order=%s", event, order_id)
        return JsonResponse({"success": True, "status": "unknown order"}, status=202)
    except AlreadyProcessed as e:
        if e.order.status == PaymentOrder.FAILED:
            logger.error(
                "Captured payment %s arrived for failed order=%s; needs manual review", payment.get("id"), order_id,
            )
        return JsonResponse({"success": True, "already_processed": True, "status": e.order.status})
    except PaymentError as e:
        return _error(e)
    except Exception:
        logger.exception("Webhook event=%s crashed for order=%s", event, order_id)
        return _server_error()

    return JsonResponse({
        "success": True,
        "status": result.order.status,
        "entitlement_pending": result.entitlement_pending,
    })


def my_orders_view(request):
    """List the logged-in user's orders, newest first."""
    if not request.user.is_authenticated:
        return _error(Unauthorized())

    # Very light pagination
    try:
        page = int(request.GET.get("page", "1"))
        if page < 1: page = 1
    except ValueError:
        page = 1
    paginator = Paginator(DjangoOrderRepository().for_user(request.user.pk), 10)
    page_obj = paginator.get_page(page)

    return JsonResponse({
        "success": True,
        "orders": [_order_detail(o) for o in page_obj.object_list],
        "page": page_obj.number,
        "has_next": page_obj.has_next(),
        "has_prev": page_obj.has_previous(),
        "total": paginator.count,
    })


@require_GET
def order_status_view(request, order_id: str):
    if not request.user.is_authenticated:
        return _error(Unauthorized())
    order = DjangoOrderRepository().get(order_id)
    if order is None or order.user_id != request.user.pk:
        return _error(NotFound())
    return JsonResponse({"success": True, "order": _order_detail(order)})
