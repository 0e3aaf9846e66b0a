"""Redis connector: TLS transport and CRLF line codec."""
