"""Request middleware: logging, timing, security headers, CSRF, permissions."""
