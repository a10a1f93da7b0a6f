from safezone.lexicon import TriggerLexicon


def test_add_normalizes_and_ignores_duplicates():
    lexicon = TriggerLexicon()
    assert lexicon.add("  Help ")
    assert not lexicon.add("HELP")
    assert lexicon.words() == ["help"]


def test_add_rejects_empty_input():
    lexicon = TriggerLexicon(["sos"])
    assert not lexicon.add("   ")
    assert not lexicon.add("")
    assert lexicon.words() == ["sos"]


def test_remove_is_noop_when_absent():
    lexicon = TriggerLexicon(["help", "sos"])
    assert not lexicon.remove("fire")
    assert lexicon.remove(" SOS ")
    assert lexicon.words() == ["help"]


def test_matches_is_case_insensitive_substring():
    lexicon = TriggerLexicon(["help", "sos"])
    assert lexicon.matches("please HELP me") == "help"
    assert lexicon.matches("nothing to see") is None
    assert lexicon.matches("") is None
    assert lexicon.matches(None) is None


def test_matches_returns_first_word_in_set_order():
    lexicon = TriggerLexicon(["sos", "help"])
    assert lexicon.matches("help, sos!") == "sos"
    assert "Help" in lexicon
