from monorun.cli import entrypoint

entrypoint()
