"""Freight domain: prices, announcements and RFQ submissions."""
