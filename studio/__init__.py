"""Booking funnel core for a recording studio website."""
