ERRORS = {
  "E_STREAM": "Stream not usable",
  "E_FORMAT": "Invalid plan file format",
  "E_TRUNCATED": "Plan file truncated or unreadable",
}
