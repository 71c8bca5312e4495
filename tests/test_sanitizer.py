from agent.core.sanitizer import clean_message, strip_reply_label


def test_clean_message_strips_tags():
    assert clean_message("<b>Hi</b>") == "Hi"
    assert clean_message('<span class="x">Hello</span> <i>there</i>') == "Hello there"


def test_clean_message_strips_you_label_once():
    assert clean_message("You: Hello") == "Hello"
    assert clean_message("You: You: Hello") == "You: Hello"
    assert clean_message("<p>You:   hey</p>") == "hey"


def test_clean_message_only_leading_label():
    assert clean_message("Hello You: there") == "Hello You: there"


def test_clean_message_empty_and_whitespace():
    assert clean_message("") == ""
    assert clean_message("   ") == ""


def test_strip_reply_label():
    assert strip_reply_label("Assistant: Hi there ") == "Hi there"
    assert strip_reply_label("AI:Hello") == "Hello"
    assert strip_reply_label("Sure! AI: is fun") == "Sure! AI: is fun"
    assert strip_reply_label("") == ""
