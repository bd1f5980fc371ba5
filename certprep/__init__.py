"""CertPrep exam practice API."""
