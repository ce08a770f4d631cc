from sitechat.llm.planning import extract_planning, find_plan_sentence

from conftest import call


def test_plan_sentence_is_taken_from_model_text() -> None:
    text = "Sure thing! I'll use the Strava data to check the latest ride. One moment."
    trace = extract_planning(text, [call("c1", "get_biking_data", query="last_ride")])
    assert trace is not None
    assert trace.tools == ["get_biking_data"]
    assert trace.reasoning == "I'll use the Strava data to check the latest ride."


def test_curly_apostrophe_and_will_forms() -> None:
    assert find_plan_sentence("I’ll use Spotify to see what is playing.") == "I’ll use Spotify to see what is playing."
    assert find_plan_sentence("First, I will use the season log to count days.") is not None
    assert find_plan_sentence("Let me look that up.") is None


def test_reasoning_is_synthesized_without_plan_text() -> None:
    calls = [
        call("c1", "get_music_data", query="recent_tracks"),
        call("c2", "get_biking_data", query="last_ride"),
        call("c3", "get_music_data", query="top_tracks"),
    ]
    trace = extract_planning("", calls)
    assert trace.tools == ["get_music_data", "get_biking_data"]
    assert trace.reasoning == "I'll use the music data and biking data to answer this question."


def test_no_tool_calls_means_no_trace() -> None:
    assert extract_planning("I'll use nothing to do this.", []) is None
