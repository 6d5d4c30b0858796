"""Auth services: stores, mail seam, gateway and retention."""
