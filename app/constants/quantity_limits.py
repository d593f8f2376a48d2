# app/constants/quantity_limits.py

# Signed 64-bit range of the BIGINT quantity columns.
QUANTITY_MIN = -(2 ** 63)
QUANTITY_MAX = 2 ** 63 - 1
