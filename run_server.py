# run_server.py
import os
import sys


def _prepare_workdir_for_pyinstaller():
    """
    Lancé depuis un exécutable PyInstaller, les données sont extraites sous
    _MEIPASS. On s'y place pour que les chemins relatifs (db/, data/) restent valides.
    """
    base = getattr(sys, "_MEIPASS", None)
    if base and os.path.isdir(base):
        os.chdir(base)


def main():
    _prepare_workdir_for_pyinstaller()

    import uvicorn
    from trucktrack.config.settings import HOST, PORT, LOG_LEVEL

    # pas de reload dans un exécutable PyInstaller
    uvicorn.run("main:app", host=HOST, port=PORT, reload=False, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
