from unittest.mock import patch

from services.agent_service import MutationResult
from use_cases.face_capture import CapturedImage, FaceFlowError
from views import login_view

IMAGE = CapturedImage(data=b"\xff\xd8")


@patch("views.login_view.session_manager")
@patch("views.login_view.agent_service.register_agent")
@patch("views.login_view.camera_view")
@patch("views.login_view.st")
def test_register_without_capture_blocks_before_submit(mock_st, mock_camera_view, mock_register, _mock_session):
    mock_camera_view.captured_image.return_value = None
    mock_st.button.return_value = False
    mock_st.text_input.side_effect = ["Asha", "9999999999", "a@x.com"]
    mock_st.form_submit_button.return_value = True

    login_view.render_register_form()

    mock_st.error.assert_called_once_with("Face capture is mandatory for registration")
    mock_register.assert_not_called()


@patch("views.login_view.session_manager")
@patch("views.login_view.agent_service.login_agent")
@patch("views.login_view.camera_view")
@patch("views.login_view.st")
def test_login_without_capture_blocks_before_submit(mock_st, mock_camera_view, mock_login, _mock_session):
    mock_camera_view.captured_image.return_value = None
    mock_st.button.side_effect = [False, True]

    login_view.render_login_form()

    mock_st.error.assert_called_once_with("Face verification is mandatory for login")
    mock_login.assert_not_called()


@patch("views.login_view.session_manager")
@patch("views.login_view.agent_service.register_agent")
@patch("views.login_view.camera_view")
@patch("views.login_view.st")
def test_backend_missing_capture_uses_taxonomy_message(mock_st, mock_camera_view, mock_register, _mock_session):
    mock_camera_view.captured_image.return_value = IMAGE
    mock_st.button.return_value = False
    mock_st.text_input.side_effect = ["Asha", "9999999999", "a@x.com"]
    mock_st.form_submit_button.return_value = True
    mock_register.return_value = MutationResult(
        ok=False, error="Face capture is mandatory for registration", error_kind=FaceFlowError.FACE_REQUIRED
    )

    login_view.render_register_form()

    mock_register.assert_called_once()
    mock_st.error.assert_called_once_with("Face capture is required for registration")
