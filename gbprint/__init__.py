"""GBPrint - unattended label printing agent.

GBPrint runs next to a label printer (typically on a Raspberry Pi), polls a
remote endpoint for the number of labels waiting to be printed, and prints
that many QR code labels, each carrying a fresh GBTID.

Usage:
    gbprint start
    gbprint status
    gbprint check

Configuration is read from environment variables (or a .env file):
    API_ENDPOINT, POLL_INTERVAL, MAX_RETRIES, RETRY_DELAY, PRINTER_NAME, ...
"""

__version__ = "0.1.0"
