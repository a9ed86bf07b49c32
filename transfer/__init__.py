"""HTTP transfer service: chunk intake, finalize, download and stats."""
