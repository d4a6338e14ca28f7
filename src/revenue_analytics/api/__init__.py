"""HTTP service exposing the Revenue Analytics views."""
