"""LLM provider access: prompt, Gemini REST client and the credential x model cascade."""
