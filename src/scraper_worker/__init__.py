"""Worker-side client for the scraper control plane work queue."""
