from workplan_engine.core.layout.viewport import ViewportFitController, fit_scale


def test_fit_scale_never_upscales():
    assert fit_scale(2000, 2000, 500, 500) == 1.0


def test_fit_scale_uses_tighter_axis():
    assert fit_scale(500, 1000, 1000, 1000) == 0.5
    assert fit_scale(1000, 250, 1000, 1000) == 0.25


def test_fit_scale_stays_positive():
    for aw, ah in [(0, 0), (-10, 400), (1, 1)]:
        s = fit_scale(aw, ah, 940, 500)
        assert 0 < s <= 1.0


def test_fit_mode_follows_resize_with_padding():
    vp = ViewportFitController(container_width=1200, container_height=600)
    assert vp.set_diagram(940, 500) == 1.0
    # 540 - 40 padding = 500 wide for a 1000 wide diagram
    vp.set_diagram(1000, 500)
    assert vp.resize(540, 1000) == 0.5


def test_manual_mode_suspends_fit_until_requested():
    vp = ViewportFitController(container_width=540, container_height=1000)
    vp.set_diagram(1000, 500)
    assert vp.zoom == 0.5
    assert vp.zoom_in() == 0.6
    assert vp.mode == "manual"
    assert vp.resize(2000, 2000) == 0.6
    assert vp.fit() == 1.0
    assert vp.mode == "fit"


def test_manual_zoom_is_clamped():
    vp = ViewportFitController()
    for _ in range(30):
        vp.zoom_in()
    assert vp.zoom == 2.0
    for _ in range(30):
        vp.zoom_out()
    assert vp.zoom == 0.2
    assert vp.reset() == 1.0


def test_zero_sized_container_keeps_last_zoom():
    vp = ViewportFitController(container_width=540, container_height=1000)
    vp.set_diagram(1000, 500)
    assert vp.resize(0, 0) == 0.5
    assert vp.container_width == 540
