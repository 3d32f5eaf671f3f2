"""Booking state machines and the guards they share."""
