"""Identity and session provider: OTP credentials and session tokens."""
