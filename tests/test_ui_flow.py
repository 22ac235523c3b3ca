"""Gradio UI callback tests."""

from __future__ import annotations

import base64
import io
from pathlib import Path
from typing import Callable, Optional

from PIL import Image

from config.settings import AppConfig
from modules.services.studio_state import GenerationStatus, StudioSession
from modules.ui import callbacks
from modules.utils.errors import ConfigurationError


def png_payload(color=(0, 128, 255)) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=color).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def write_png(path: Path, color=(255, 0, 0)) -> Path:
    path.write_bytes(base64.b64decode(png_payload(color)))
    return path


class DummyGenerator:
    """Stub generator for capturing inputs."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Optional[str], str]] = []
        self.error: Optional[Exception] = None
        self.during_call: Optional[Callable[[], None]] = None

    def generate(self, prompt, reference_image_base64=None, reference_mime_type="image/png"):
        self.calls.append((prompt, reference_image_base64, reference_mime_type))
        if self.during_call is not None:
            self.during_call()
        if self.error is not None:
            raise self.error
        return f"data:image/png;base64,{png_payload()}"


def build_callbacks(tmp_path: Path, generator: Optional[DummyGenerator] = None, sleeps: Optional[list] = None):
    config = AppConfig(api_key="test-key", download_dir=tmp_path / "downloads", download_prefix="studio")
    recorded = sleeps if sleeps is not None else []
    return callbacks.build_callbacks(
        config,
        generator=generator or DummyGenerator(),
        sleep=recorded.append,
    )


def test_on_generate_success_renders_gallery(tmp_path):
    generator = DummyGenerator()
    cb = build_callbacks(tmp_path, generator)["on_generate"]

    session, gallery, error, label = cb(StudioSession(), "a red fox in snow")

    assert session.state.status is GenerationStatus.IDLE
    assert len(session.state.history) == 1
    assert len(gallery) == 1
    image, caption = gallery[0]
    assert image.size == (8, 8)
    assert caption == "a red fox in snow"
    assert error == ""
    assert label == "Download All (1)"
    assert generator.calls[0][0] == "a red fox in snow"


def test_on_generate_empty_prompt(tmp_path):
    generator = DummyGenerator()
    cb = build_callbacks(tmp_path, generator)["on_generate"]

    session, gallery, error, label = cb(StudioSession(), "   ")

    assert generator.calls == []
    assert gallery == []
    assert "Please enter a scene prompt." in error
    assert label == "Download All (0)"


def test_on_generate_failure_keeps_gallery(tmp_path):
    generator = DummyGenerator()
    cb = build_callbacks(tmp_path, generator)["on_generate"]
    session, _, _, _ = cb(StudioSession(), "first")

    generator.error = ConfigurationError("API Key is missing.")
    session, gallery, error, _ = cb(session, "second")

    assert session.state.status is GenerationStatus.ERROR
    assert len(gallery) == 1
    assert "API Key is missing." in error


def test_reference_upload_and_clear(tmp_path):
    picture = write_png(tmp_path / "hero.png")
    generator = DummyGenerator()
    cb_map = build_callbacks(tmp_path, generator)

    session, preview, file_value, error = cb_map["on_reference_upload"](StudioSession(), str(picture))
    assert session.state.reference_image is not None
    assert preview.size == (8, 8)
    assert file_value == str(picture)
    assert error == ""

    session, gallery, _, _ = cb_map["on_generate"](session, "hero at sea")
    assert generator.calls[0][1] is not None
    assert gallery[0][1].startswith("[REF USED]")

    session, preview, file_value = cb_map["on_clear_reference"](session)
    assert session.state.reference_image is None
    assert preview is None
    assert file_value is None


def test_reference_upload_rejects_non_image(tmp_path):
    notes = tmp_path / "notes.txt"
    notes.write_text("not a picture", encoding="utf-8")
    cb = build_callbacks(tmp_path)["on_reference_upload"]

    session, preview, file_value, error = cb(StudioSession(), str(notes))

    assert session.state.reference_image is None
    assert preview is None
    assert file_value is None
    assert "valid image" in error


def test_rejected_upload_clears_picker_and_keeps_previous_reference(tmp_path):
    picture = write_png(tmp_path / "hero.png")
    notes = tmp_path / "notes.txt"
    notes.write_text("not a picture", encoding="utf-8")
    cb = build_callbacks(tmp_path)["on_reference_upload"]
    session, _, _, _ = cb(StudioSession(), str(picture))
    held = session.state.reference_image

    session, preview, file_value, error = cb(session, str(notes))

    assert file_value is None
    assert session.state.reference_image == held
    assert preview.size == (8, 8)
    assert "valid image" in error


def test_same_image_can_be_uploaded_twice(tmp_path):
    picture = write_png(tmp_path / "hero.png")
    cb = build_callbacks(tmp_path)["on_reference_upload"]
    session, _, _, _ = cb(StudioSession(), str(picture))

    session, _, file_value, error = cb(session, str(picture))

    assert file_value == str(picture)
    assert error == ""


def test_clear_during_generation_is_kept(tmp_path):
    picture = write_png(tmp_path / "hero.png")
    generator = DummyGenerator()
    cb_map = build_callbacks(tmp_path, generator)
    session, _, _, _ = cb_map["on_reference_upload"](StudioSession(), str(picture))
    generator.during_call = lambda: cb_map["on_clear_reference"](session)

    session, gallery, error, _ = cb_map["on_generate"](session, "hero at sea")

    # the request used the reference held at click time
    assert generator.calls[0][1] is not None
    assert gallery[0][1].startswith("[REF USED]")
    # the clear made during the call survives the result
    assert session.state.reference_image is None
    assert session.state.status is GenerationStatus.IDLE
    assert error == ""


def test_upload_during_generation_is_kept(tmp_path):
    picture = write_png(tmp_path / "hero.png", (0, 255, 0))
    generator = DummyGenerator()
    cb_map = build_callbacks(tmp_path, generator)
    session = StudioSession()
    uploads: list = []
    generator.during_call = lambda: uploads.append(cb_map["on_reference_upload"](session, str(picture)))

    session, gallery, _, _ = cb_map["on_generate"](session, "empty beach")

    assert generator.calls[0][1] is None
    assert not session.state.history[0].has_reference
    assert gallery[0][1] == "empty beach"
    assert session.state.reference_image is not None
    assert session.state.reference_image == uploads[0][0].state.reference_image
    assert session.state.status is GenerationStatus.IDLE


def test_second_generate_in_same_session_is_refused(tmp_path):
    generator = DummyGenerator()
    cb_map = build_callbacks(tmp_path, generator)
    session = StudioSession()
    nested: list = []
    generator.during_call = lambda: nested.append(cb_map["on_generate"](session, "again"))

    session, gallery, error, _ = cb_map["on_generate"](session, "once")

    assert len(generator.calls) == 1
    assert "already in progress" in nested[0][2]
    assert len(gallery) == 1
    assert session.state.status is GenerationStatus.IDLE
    assert session.state.error_message is None


def test_download_all_writes_every_entry(tmp_path):
    sleeps: list = []
    cb_map = build_callbacks(tmp_path, sleeps=sleeps)
    session, _, _, _ = cb_map["on_generate"](StudioSession(), "one")
    session, _, _, _ = cb_map["on_generate"](session, "two")

    files, message = cb_map["on_download_all"](session)

    assert [Path(path).name for path in files] == ["studio-gen-1.png", "studio-gen-2.png"]
    assert all(Path(path).is_file() for path in files)
    assert sleeps == [0.5]
    assert "2 image(s)" in message


def test_download_all_with_empty_history(tmp_path):
    cb = build_callbacks(tmp_path)["on_download_all"]

    files, message = cb(StudioSession())

    assert files is None
    assert "Nothing to download" in message
    assert not (tmp_path / "downloads").exists()


def test_download_one_selected_entry(tmp_path):
    cb_map = build_callbacks(tmp_path)
    session, _, _, _ = cb_map["on_generate"](StudioSession(), "one")

    path, message = cb_map["on_download_one"](session, 0)
    assert Path(path).name == f"studio-ai-{session.state.history[0].id}.png"
    assert Path(path).read_bytes().startswith(b"\x89PNG")

    missing, message = cb_map["on_download_one"](session, 5)
    assert missing is None
    assert "Select an image" in message


def test_build_app_composes_blocks(tmp_path):
    from modules.ui.layout import build_app

    demo = build_app(AppConfig(download_dir=tmp_path), generator=DummyGenerator())

    assert demo is not None
    assert demo.title == "Character Scene Studio"


def test_build_app_wires_picker_clear_and_unbounded_generate(tmp_path):
    from modules.ui.layout import build_app

    demo = build_app(AppConfig(download_dir=tmp_path), generator=DummyGenerator())
    fns = demo.fns.values() if isinstance(demo.fns, dict) else demo.fns

    triggers = {event for fn in fns for _, event in fn.targets}
    assert "clear" in triggers
    assert "upload" in triggers
    assert all(fn.concurrency_limit != 1 for fn in fns)


def test_reference_picker_is_image_file_input(tmp_path):
    import gradio as gr

    from modules.ui.layout import build_app

    demo = build_app(AppConfig(download_dir=tmp_path), generator=DummyGenerator())

    pickers = [
        block
        for block in demo.blocks.values()
        if isinstance(block, gr.File) and block.file_types == ["image"]
    ]
    assert len(pickers) == 1
    assert pickers[0].type == "filepath"
