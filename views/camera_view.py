"""Face-capture dialog around st.camera_input."""

import logging
from typing import Optional

import streamlit as st

from use_cases.face_capture import CapturedImage, FaceFlow, face_capture_session

log = logging.getLogger(__name__)


class StreamlitCamera:
    """
    Browser camera behind st.camera_input. The widget (and with it the device)
    is live only while st.session_state.face_flow names this flow.
    """

    def __init__(self, flow: FaceFlow):
        self.flow = flow
        self.frame = None
        self._held = False

    def start(self):
        st.session_state.face_flow = self.flow
        self.frame = st.camera_input("Look straight at the camera", key=f"camera_{self.flow}")

    def hold(self):
        # Keeps the dialog open across the rerun while the user frames the shot.
        self._held = True

    def stop(self):
        if self._held:
            return
        st.session_state.face_flow = None
        st.session_state.pop(f"camera_{self.flow}", None)
        log.debug(f"Camera released ({self.flow})")


def open_face_capture(flow: FaceFlow):
    st.session_state.face_flow = flow


def captured_image(flow: FaceFlow) -> Optional[CapturedImage]:
    return st.session_state.get("captured_images", {}).get(flow)


def discard_capture(flow: FaceFlow):
    st.session_state.get("captured_images", {}).pop(flow, None)


def release_camera():
    """Dismiss callback for the capture dialog; closing with X never runs the dialog body."""
    flow = st.session_state.get("face_flow")
    if flow:
        StreamlitCamera(flow).stop()


@st.dialog("Face capture", on_dismiss=release_camera)
def face_capture_dialog(flow: FaceFlow):
    camera = StreamlitCamera(flow)
    with face_capture_session(camera):
        c_use, c_cancel = st.columns(2)
        use_clicked = c_use.button("Use photo", type="primary", disabled=camera.frame is None, use_container_width=True)
        cancel_clicked = c_cancel.button("Cancel", use_container_width=True)

        if use_clicked and camera.frame is not None:
            image = CapturedImage(data=camera.frame.getvalue(), mime_type=camera.frame.type or "image/jpeg")
            st.session_state.captured_images[flow] = image
            st.toast("Face image captured successfully")
        elif not cancel_clicked:
            camera.hold()
            return
    st.rerun()


def render_pending_capture():
    """Re-opens the dialog on reruns while a capture is in progress."""
    flow = st.session_state.get("face_flow")
    if flow:
        face_capture_dialog(flow)
