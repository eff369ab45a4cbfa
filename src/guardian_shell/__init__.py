"""Client-side tooling for Guardian MFA push enrollment and transaction resolution."""

__version__ = "1.0.0"
