"""MiniHotel dashboard backend: hotel API client, booking forms and currency display."""
