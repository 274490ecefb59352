from livescribe.features.capture.service.negotiation import negotiate_mime_type, MIME_PREFERENCES


def test_first_supported_wins():
    supported = {"audio/ogg;codecs=opus", "audio/mp4"}
    assert negotiate_mime_type(supported.__contains__) == "audio/ogg;codecs=opus"


def test_prefers_webm_opus():
    assert negotiate_mime_type(lambda m: True) == MIME_PREFERENCES[0] == "audio/webm;codecs=opus"


def test_falls_back_to_device_default():
    assert negotiate_mime_type(lambda m: False) == ""


def test_mp4_only():
    assert negotiate_mime_type(lambda m: m == "audio/mp4") == "audio/mp4"
