"""Gradio layout for the scene generator."""

from __future__ import annotations

from typing import Any, Optional

try:
    import gradio as gr
except ImportError:  # pragma: no cover
    gr = None  # type: ignore

from config.settings import AppConfig
from modules.services.studio_state import ImageGenerator, StudioSession, StudioState
from modules.ui.callbacks import build_callbacks, download_all_label

GENERATE_LABEL = "GENERATE IMAGE"
GENERATING_LABEL = "GENERATING..."


def _lock_controls() -> tuple[Any, Any, Any]:
    """Disable generate and the reference controls while a request runs."""
    return (
        gr.update(value=GENERATING_LABEL, interactive=False),
        gr.update(interactive=False),
        gr.update(interactive=False),
    )


def _unlock_controls() -> tuple[Any, Any, Any]:
    return (
        gr.update(value=GENERATE_LABEL, interactive=True),
        gr.update(interactive=True),
        gr.update(interactive=True),
    )


def build_app(config: AppConfig, generator: Optional[ImageGenerator] = None) -> Any:
    """Compose and return the Gradio application."""
    if gr is None:
        raise RuntimeError("Gradio is not installed; install the project dependencies first.")

    callbacks_map = build_callbacks(config, generator=generator)

    with gr.Blocks(title="Character Scene Studio") as demo:
        state = gr.State(StudioSession())

        gr.Markdown(
            "## Character Scene Studio\n"
            "Generate consistent characters in any scene. No watermarks."
        )

        with gr.Row():
            with gr.Column(scale=2):
                prompt = gr.Textbox(
                    label="Scene Description",
                    lines=6,
                    placeholder=(
                        "Describe the scene in detail... (e.g., A futuristic samurai "
                        "standing on a neon rooftop in the rain)"
                    ),
                )

            with gr.Column(scale=1):
                reference_file = gr.File(
                    label="Character Reference",
                    file_count="single",
                    file_types=["image"],
                    type="filepath",
                )
                reference_preview = gr.Image(
                    label="Reference Preview",
                    type="pil",
                    interactive=False,
                )
                clear_btn = gr.Button("Clear Reference", size="sm")

        error_box = gr.Markdown("")
        generate_btn = gr.Button(GENERATE_LABEL, variant="primary")

        gr.Markdown("### Generation History")
        gallery = gr.Gallery(label="Your recently created images", columns=3, height="auto")
        with gr.Row():
            download_btn = gr.Button(download_all_label(StudioState()))
            download_status = gr.Markdown("")
        download_files = gr.File(label="Downloads", file_count="multiple", interactive=False)
        selected_file = gr.File(label="Selected Image", interactive=False)

        prompt.change(
            fn=callbacks_map["on_prompt_change"],
            inputs=[state, prompt],
            outputs=[state],
            queue=False,
        )

        reference_file.upload(
            fn=callbacks_map["on_reference_upload"],
            inputs=[state, reference_file],
            outputs=[state, reference_preview, reference_file, error_box],
        )

        # the picker's own remove button and the explicit button share a handler
        reference_file.clear(
            fn=callbacks_map["on_clear_reference"],
            inputs=[state],
            outputs=[state, reference_preview, reference_file],
        )
        clear_btn.click(
            fn=callbacks_map["on_clear_reference"],
            inputs=[state],
            outputs=[state, reference_preview, reference_file],
        )

        # Each session holds one StudioSession, so a second click while LOADING
        # is refused by the controller; sessions do not block each other.
        generate_btn.click(
            fn=_lock_controls,
            inputs=None,
            outputs=[generate_btn, reference_file, clear_btn],
            queue=False,
        ).then(
            fn=callbacks_map["on_generate"],
            inputs=[state, prompt],
            outputs=[state, gallery, error_box, download_btn],
            concurrency_limit=None,
        ).then(
            fn=_unlock_controls,
            inputs=None,
            outputs=[generate_btn, reference_file, clear_btn],
            queue=False,
        )

        download_btn.click(
            fn=callbacks_map["on_download_all"],
            inputs=[state],
            outputs=[download_files, download_status],
        )

        def _on_select(current: StudioSession, evt: gr.SelectData) -> tuple[Optional[str], str]:
            return callbacks_map["on_download_one"](current, evt.index)

        gallery.select(
            fn=_on_select,
            inputs=[state],
            outputs=[selected_file, download_status],
        )

    return demo
