"""Demo echo/broadcast peer for the duplex client."""
