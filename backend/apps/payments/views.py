# apps/payments/views.py

import logging

from rest_framework import permissions, status
from rest_framework.exceptions import ParseError
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.exceptions import InvalidSignature, MalformedReference

from .services import create_checkout, process_webhook_event

logger = logging.getLogger(__name__)


class CheckoutView(APIView):
    """
    POST /api/v1/payments/checkout/   {"amountInCents": 5000000}

    Authentication is checked by the service so an anonymous caller gets
    401 rather than 403.
    """

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        data = request.data
        amount_in_cents = data.get("amountInCents") if hasattr(data, "get") else None
        checkout = create_checkout(request.user, amount_in_cents)
        return Response(checkout.to_dict())


class WebhookView(APIView):
    """
    POST /api/v1/payments/webhook/

    Called by the payment gateway. Anything but a 2xx makes the gateway
    retry, so only signature failures and internal errors are reported.
    """

    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        try:
            outcome = process_webhook_event(request.data)
        except (InvalidSignature, ParseError) as e:
            logger.warning(f"Rejected gateway webhook: {e}")
            return Response({"error": "Invalid signature"}, status=status.HTTP_401_UNAUTHORIZED)
        except MalformedReference as e:
            logger.error(f"Unprocessable approved transaction acknowledged: {e.message}")
            return Response({"received": True})
        except Exception as e:
            logger.exception(f"Error in gateway webhook handler: {e}")
            return Response({"error": "Internal server error"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        logger.debug(f"Gateway webhook processed: {outcome}")
        return Response({"received": True})
