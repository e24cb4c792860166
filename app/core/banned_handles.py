"""Handles that cannot be claimed: system routes, reserved words, staff-like names."""

BANNED_HANDLES = frozenset({
    # System routes
    "admin", "api", "dashboard", "sign-in", "sign-up", "login", "logout",
    "register", "settings", "profile", "account", "help", "support",
    "contact", "about", "terms", "privacy", "onboarding", "verify",
    "verified", "verification",

    # Reserved
    "doctor", "doctors", "medical", "health", "healthcare", "hospital",
    "clinic", "patient", "patients", "www", "mail", "email", "ftp",
    "localhost", "root", "null", "undefined", "test", "demo", "example",

    # Impersonation
    "moderator", "mod", "staff", "official",
})


def is_banned_handle(handle: str) -> bool:
    return handle.lower() in BANNED_HANDLES
