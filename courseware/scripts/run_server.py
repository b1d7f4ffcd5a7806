"""
Script de serveur de développement.

Lance l'API avec une base SQLite en mémoire et un cache mémoire si aucune URL n'est configurée.
Sans `OPENAI_API_KEY`, le générateur renvoie une réponse déterministe et les objets produits
passent par la reconstruction heuristique.
"""

import os

# Ensure local-friendly defaults BEFORE importing app/modules
os.environ.setdefault("APP_ENV", "dev")

import uvicorn

from courseware.app.main import create_app
from courseware.core.container import Container


def main():
    """Point d'entrée: `python -m courseware.scripts.run_server`."""
    app = create_app(Container())
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port, reload=False)


if __name__ == "__main__":
    main()
