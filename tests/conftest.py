import matplotlib

matplotlib.use("Agg")

import pytest  # noqa: E402

from pipette_arm.presenter import ScenePresenter  # noqa: E402
from pipette_arm.rendering import MatplotlibEngine  # noqa: E402


@pytest.fixture
def presenter():
    presenter = ScenePresenter(lambda: MatplotlibEngine(curve_segments=8), width=160, height=120)
    yield presenter
    presenter.unmount()
