from field_dispatch.core.mime_utils import OCTET_STREAM, effective_mime, normalize_mime, sanitize_filename


def test_normalize_mime_valid_with_params():
    assert normalize_mime("Image/JPEG; quality=90") == "image/jpeg"


def test_normalize_mime_invalid_or_missing_to_octet_stream():
    assert normalize_mime(None) == OCTET_STREAM
    assert normalize_mime("") == OCTET_STREAM
    assert normalize_mime("not-a-mime") == OCTET_STREAM


def test_effective_mime_guesses_from_filename_when_generic():
    assert effective_mime("application/octet-stream", "front.png") == "image/png"


def test_effective_mime_stays_generic_for_unknown_extension():
    assert effective_mime(None, "file.unknownext") == OCTET_STREAM


def test_sanitize_filename_replaces_unsafe_characters():
    assert sanitize_filename("front door (1).jpg") == "front_door__1_.jpg"
    assert sanitize_filename("../../etc/passwd") == ".._.._etc_passwd"
