from __future__ import annotations

import os

import uvicorn


def main() -> None:
    reload_enabled = os.getenv("THINNING_ENV", "development").lower() != "production"
    uvicorn.run(
        "thinning.factory:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=reload_enabled,
    )


if __name__ == "__main__":
    main()
