"""Servicio de registro de glucosa (Sugar Tracking) sobre Google Sheets."""
