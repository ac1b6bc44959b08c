"""
Security headers middleware.

Every response gets the fixed header set below. JSON responses are marked
``no-store`` because they carry session-bound data, and HSTS is only sent
when the session cookie is HTTPS-only (production).

Usage:
    from richhabits.middleware.security_headers import init_security_headers
    init_security_headers(app)
"""

# The API serves JSON only; product and design images load from object storage
API_CSP = "; ".join([
    "default-src 'self'",
    "img-src 'self' data: blob: https:",
    "connect-src 'self' https:",
    "frame-ancestors 'none'",
    "base-uri 'self'",
    "form-action 'self'",
])

BASE_HEADERS = {
    "Content-Security-Policy": API_CSP,
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), payment=()",
}

HSTS = "max-age=31536000; includeSubDomains"


def init_security_headers(app):
    """Register an after_request handler that injects security headers."""
    send_hsts = bool(app.config.get("SESSION_COOKIE_SECURE"))

    @app.after_request
    def _add_security_headers(response):
        for name, value in BASE_HEADERS.items():
            response.headers.setdefault(name, value)
        if send_hsts:
            response.headers.setdefault("Strict-Transport-Security", HSTS)
        if response.mimetype == "application/json":
            response.headers.setdefault("Cache-Control", "no-store")
        response.headers.pop("Server", None)
        return response
