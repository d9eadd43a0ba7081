"""TaskFlow: a console todo manager backed by a REST task API (or an offline demo backend)."""
