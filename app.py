"""Streamlit UI for the scanned form filler."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict

import streamlit as st
from dotenv import load_dotenv

from formfiller.config import Settings
from formfiller.detection import DetectorKind, build_detector
from formfiller.errors import FormFillerError
from formfiller.models import FieldType, FillRequest
from formfiller.pipeline import FormFillingService, UploadedForm

load_dotenv()

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

SETTINGS = Settings.from_env(dotenv=False)
_DETECTOR_LABELS = {"Vision model (Gemini)": DetectorKind.VISION, "OCR heuristics (Tesseract)": DetectorKind.OCR}


def _init_session_state() -> None:
    defaults = {
        "uploaded_filename": None,
        "uploaded_form": None,
        "filled_pdf_bytes": None,
        "filled_pdf_name": None,
        "filled_location": None,
        "fill_warnings": [],
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def _reset_state_on_new_upload(filename: str) -> None:
    if st.session_state.uploaded_filename != filename:
        st.session_state.uploaded_form = None
        st.session_state.filled_pdf_bytes = None
        st.session_state.filled_pdf_name = None
        st.session_state.filled_location = None
        st.session_state.fill_warnings = []
        st.session_state.uploaded_filename = filename


def _build_service(kind: DetectorKind) -> FormFillingService:
    return FormFillingService(SETTINGS, detector=build_detector(SETTINGS, kind))


def _render_field_inputs(uploaded: UploadedForm) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for field in uploaded.detection.fields:
        label = f"{field.label} *" if field.required else field.label
        widget_key = f"value_{field.id}"
        if field.type == FieldType.CHECKBOX:
            values[field.id] = "X" if st.checkbox(label, key=widget_key) else ""
        else:
            values[field.id] = st.text_input(label, key=widget_key)
    return values


def main() -> None:
    st.set_page_config(page_title="Form Filler", page_icon="📝", layout="wide")
    _init_session_state()

    st.title("Form Filler")
    st.caption("Upload a scanned form or PDF, answer the detected questions in any supported script, and download the filled copy.")

    with st.sidebar:
        detector_label = st.radio("Field detection", options=list(_DETECTOR_LABELS), index=0)
    service = _build_service(_DETECTOR_LABELS[detector_label])

    uploaded_file = st.file_uploader("Upload form", type=["pdf", "png", "jpg", "jpeg"], accept_multiple_files=False)
    if uploaded_file is None:
        return
    _reset_state_on_new_upload(uploaded_file.name)

    if st.session_state.uploaded_form is None:
        with st.spinner("Detecting form fields..."):
            st.session_state.uploaded_form = asyncio.run(service.detect(uploaded_file.getvalue(), uploaded_file.name))
    uploaded: UploadedForm = st.session_state.uploaded_form

    if uploaded.detection.used_fallback:
        st.warning("Fields could not be detected reliably; showing a minimal default set.")

    st.subheader("Detected Fields")
    st.dataframe(
        {
            "Id": [field.id for field in uploaded.detection.fields],
            "Label": [field.label for field in uploaded.detection.fields],
            "Type": [field.type.value for field in uploaded.detection.fields],
            "Required": ["Yes" if field.required else "No" for field in uploaded.detection.fields],
        }
    )

    with st.form("field_input_form"):
        values = _render_field_inputs(uploaded)
        submitted = st.form_submit_button("Fill PDF")

    if submitted:
        request = FillRequest(fields=uploaded.detection.fields, values=values, raster=uploaded.detection.raster)
        try:
            with st.spinner("Filling form..."):
                result = asyncio.run(service.fill(uploaded.pdf_bytes, request))
        except FormFillerError as e:
            st.error(f"Form filling failed during {e.stage}: {str(e)}")
        else:
            st.session_state.filled_pdf_bytes = result.document_bytes
            st.session_state.filled_pdf_name = result.artifact_name
            st.session_state.filled_location = result.download_location
            st.session_state.fill_warnings = list(result.warnings)
            st.success("PDF filled successfully!")

    for warning in st.session_state.fill_warnings:
        st.warning(f"Skipped '{warning.field_id}' ({warning.stage}): {warning.message}")

    if st.session_state.filled_pdf_bytes:
        st.caption(f"Stored at {st.session_state.filled_location}")
        st.download_button(
            label="Download Filled PDF",
            data=st.session_state.filled_pdf_bytes,
            file_name=st.session_state.filled_pdf_name or "filled_form.pdf",
            mime="application/pdf",
        )


if __name__ == "__main__":
    main()
