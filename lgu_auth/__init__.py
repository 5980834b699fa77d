"""LGU / Barangay information system: authentication and session API."""
