"""HTTP reporting surface for the ticket mailer worker."""
