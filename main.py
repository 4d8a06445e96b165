"""
Trial Matching Backend

Scores patients against clinical trials, persists matches per consultation,
and tracks patient notification and consent.

Run with:
    uvicorn main:app --reload --port 8000
"""

from trialmatch.main import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
