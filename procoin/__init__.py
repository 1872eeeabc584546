"""procoin: course catalog API and transaction mailer."""

__version__ = "0.1.0"
