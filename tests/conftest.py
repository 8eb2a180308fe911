import os

# charts in the experiment tests are rendered off-screen
os.environ.setdefault("MPLBACKEND", "Agg")
