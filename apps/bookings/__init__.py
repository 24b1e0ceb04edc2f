"""Bookings app package.

This app holds the booking lifecycle: the booking model, the state
machine and rent calculator, the availability checker and the command
handlers that move bookings and money together inside one transaction.
"""
