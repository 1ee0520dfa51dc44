import os
import tempfile
from datetime import datetime
from typing import Sequence

from matplotlib.figure import Figure

from country_cache.config import CACHE_IMAGE_PATH
from country_cache.store import isoformat_utc


def generate_summary_image(
    total_countries: int,
    top_countries: Sequence,
    refreshed_at: datetime,
    path: str = CACHE_IMAGE_PATH,
) -> str:
    """
    Draw the top countries by estimated GDP and save the chart as a PNG.

    ``top_countries`` holds objects with ``name`` and ``estimated_gdp``
    attributes. The chart is written to a temporary file beside ``path``
    and then moved over it, so readers never see a partial image.
    """
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)

    top_names = [c.name for c in top_countries]
    top_gdps = [c.estimated_gdp for c in top_countries]

    # built without pyplot: no global figure manager across worker threads
    fig = Figure(figsize=(10, 6))
    ax = fig.subplots()
    if top_names:
        ax.bar(top_names, top_gdps, color="skyblue")
        ax.set_ylabel("Estimated GDP")
    else:
        ax.text(0.5, 0.5, "No GDP data available", ha="center", va="center")
        ax.set_axis_off()
    ax.set_title(
        f"Top {len(top_names)} Countries by Estimated GDP\n"
        f"Total Countries: {total_countries}\n"
        f"Last Refresh: {isoformat_utc(refreshed_at)}"
    )
    fig.tight_layout()

    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".summary-", suffix=".png")
    try:
        with os.fdopen(fd, "wb") as f:
            fig.savefig(f, format="png")
        os.replace(tmp_path, path)
    except BaseException:
        os.unlink(tmp_path)
        raise
    return path
