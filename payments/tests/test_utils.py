import hashlib
import hmac

from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

from payments.config import GatewayConfig
from payments.utils import payment_signature, verify_payment_signature, verify_webhook_signature


class PaymentSignatureTests(SimpleTestCase):
    def test_signature_is_hmac_of_order_and_payment(self):
        expected = hmac.new(b"secret", b"order_ABC|pay_XYZ", hashlib.sha256).hexdigest()
        self.assertEqual(payment_signature("order_ABC", "pay_XYZ", "secret"), expected)

    def test_verify_accepts_matching_signature(self):
        sig = payment_signature("order_ABC", "pay_XYZ", "secret")
        self.assertTrue(verify_payment_signature("order_ABC", "pay_XYZ", sig, "secret"))
        self.assertTrue(verify_payment_signature("order_ABC", "pay_XYZ", f"  {sig}\n", "secret"))

    def test_verify_rejects_other_payment_or_secret(self):
        sig = payment_signature("order_ABC", "pay_XYZ", "secret")
        self.assertFalse(verify_payment_signature("order_ABC", "pay_OTHER", sig, "secret"))
        self.assertFalse(verify_payment_signature("order_ABC", "pay_XYZ", sig, "another"))
        self.assertFalse(verify_payment_signature("order_ABC", "pay_XYZ", "", "secret"))
        self.assertFalse(verify_payment_signature("order_ABC", "pay_XYZ", None, "secret"))

    def test_non_ascii_signature_is_a_mismatch(self):
        self.assertFalse(verify_payment_signature("order_ABC", "pay_XYZ", "\u00e9" * 64, "secret"))
        self.assertFalse(verify_webhook_signature(b"{}", "\u00e9" * 64, "whsec"))

    def test_missing_secret_is_a_configuration_error(self):
        with self.assertLogs("payments.utils", level="ERROR"):
            with self.assertRaises(ImproperlyConfigured):
                verify_payment_signature("order_ABC", "pay_XYZ", "sig", "")


class WebhookSignatureTests(SimpleTestCase):
    def test_signature_covers_raw_body(self):
        body = b'{"event":"payment.captured"}'
        sig = hmac.new(b"whsec", body, hashlib.sha256).hexdigest()
        self.assertTrue(verify_webhook_signature(body, sig, "whsec"))
        self.assertFalse(verify_webhook_signature(body + b" ", sig, "whsec"))

    def test_missing_webhook_secret_raises(self):
        with self.assertLogs("payments.utils", level="ERROR"):
            with self.assertRaises(ImproperlyConfigured):
                verify_webhook_signature(b"{}", "sig", "")


class GatewayConfigTests(SimpleTestCase):
    @override_settings(RAZORPAY={
        "KEY_ID": "rzp_live", "KEY_SECRET": "s3cret", "WEBHOOK_SECRET": "wh",
        "BASE_URL": "https://api.example.com/", "TIMEOUT": "7",
    })
    def test_reads_settings_once(self):
        config = GatewayConfig.from_settings()
        self.assertEqual(config.key_id, "rzp_live")
        self.assertEqual(config.base_url, "https://api.example.com")
        self.assertEqual(config.timeout, 7.0)
        self.assertTrue(config.is_configured)
        self.assertNotIn("s3cret", repr(config))

    def test_blank_credentials_are_not_configured(self):
        config = GatewayConfig.from_settings({"KEY_ID": "", "KEY_SECRET": ""})
        self.assertFalse(config.is_configured)
        self.assertEqual(config.base_url, "https://api.razorpay.com")
