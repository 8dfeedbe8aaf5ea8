# backend/tests/test_answer_capture.py
import asyncio
import threading

from core.errors import GenerationError
from services.answer_capture import (
    RATE_LIMIT_MESSAGE,
    AnswerCaptureWorkflow,
    CaptureState,
    clamp_rating,
    render,
)

QUESTION = {"question": "What is a goroutine?", "answer": "A lightweight thread managed by the Go runtime."}
LONG_ANSWER = ["A goroutine is a function", "running concurrently", "scheduled by the Go runtime."]


def _workflow(store, genai, interview_id="iv-1", **kw):
    return AnswerCaptureWorkflow(store, genai, interview_id, QUESTION, **kw)


def _record(wf, segments=LONG_ANSWER):
    assert wf.start_capture().ok
    for s in segments:
        wf.add_segment(s)


def test_segments_join_with_single_space(store, genai):
    wf = _workflow(store, genai)
    _record(wf)
    assert wf.model.answer == "A goroutine is a function running concurrently scheduled by the Go runtime."


def test_short_answer_is_rejected_without_scoring(store, genai):
    wf = _workflow(store, genai)
    _record(wf, ["too short"])
    result = asyncio.run(wf.stop_capture())

    assert not result.ok
    assert genai.calls == 0
    assert wf.state is CaptureState.idle
    assert wf.model.validation_error == "Your answer should be more than 30 characters."
    assert wf.model.answer == "too short"


def test_scoring_then_save(store, genai):
    genai.queue('```json\n{"ratings": 8, "feedback": "Solid."}\n```')
    wf = _workflow(store, genai)
    _record(wf)

    assert asyncio.run(wf.stop_capture()).ok
    assert wf.state is CaptureState.scored
    assert wf.model.ai_result == {"ratings": 8, "feedback": "Solid."}
    assert 'Question: "What is a goroutine?"' in genai.prompts[0]
    assert "Correct Answer:" in genai.prompts[0]

    assert asyncio.run(wf.save()).ok
    assert wf.state is CaptureState.saved
    saved = store.query("userAnswers", mockIdRef="iv-1")
    assert len(saved) == 1
    rec = saved[0]
    assert rec["question"] == QUESTION["question"]
    assert rec["correct_ans"] == QUESTION["answer"]
    assert rec["user_ans"] == wf.model.answer
    assert rec["rating"] == 8
    assert rec["createdAt"] is not None


def test_scoring_transport_failure_still_lands_in_scored(store, genai):
    genai.queue(GenerationError("[500] boom", status=500))
    wf = _workflow(store, genai)
    _record(wf)
    asyncio.run(wf.stop_capture())

    assert wf.state is CaptureState.scored
    assert wf.model.ai_result == {"ratings": 0, "feedback": "Error: [500] boom"}
    assert wf.model.notifications[-1].title == "Error generating feedback: [500] boom"


def test_rate_limit_message(store, genai):
    genai.queue(GenerationError("[429] quota", status=429))
    wf = _workflow(store, genai)
    _record(wf)
    asyncio.run(wf.stop_capture())
    assert wf.model.notifications[-1].title == RATE_LIMIT_MESSAGE


def test_reply_without_braces_is_invalid_format(store, genai):
    genai.queue("Nice answer, 9 out of 10")
    wf = _workflow(store, genai)
    _record(wf)
    asyncio.run(wf.stop_capture())
    assert wf.model.ai_result == {"ratings": 0, "feedback": "Error: Invalid response format from AI"}


def test_save_rejects_missing_feedback(store, genai):
    genai.queue('{"ratings": 6, "feedback": ""}')
    wf = _workflow(store, genai)
    _record(wf)
    asyncio.run(wf.stop_capture())

    result = asyncio.run(wf.save())
    assert not result.ok
    assert result.message == "Invalid feedback data. Please record your answer again."
    assert wf.state is CaptureState.scored
    assert store.snapshot("userAnswers") == []


def test_duplicate_question_is_not_saved_twice(store, genai):
    genai.queue('{"ratings": 7, "feedback": "ok"}', '{"ratings": 9, "feedback": "better"}')
    first = _workflow(store, genai)
    _record(first)
    asyncio.run(first.stop_capture())
    assert asyncio.run(first.save()).ok

    second = _workflow(store, genai)
    _record(second)
    asyncio.run(second.stop_capture())
    result = asyncio.run(second.save())

    assert not result.ok
    assert second.state is CaptureState.scored
    assert second.model.notifications[-1].title == "Already Answered"
    assert len(store.query("userAnswers", mockIdRef="iv-1")) == 1


def test_same_question_in_another_interview_is_allowed(store, genai):
    genai.queue('{"ratings": 7, "feedback": "ok"}', '{"ratings": 5, "feedback": "ok"}')
    for iid in ("iv-1", "iv-2"):
        wf = _workflow(store, genai, interview_id=iid)
        _record(wf)
        asyncio.run(wf.stop_capture())
        assert asyncio.run(wf.save()).ok
    assert len(store.snapshot("userAnswers")) == 2


def test_record_again_resets_and_drops_stale_segments(store, genai):
    genai.queue('{"ratings": 7, "feedback": "ok"}')
    wf = _workflow(store, genai)
    _record(wf)
    asyncio.run(wf.stop_capture())

    old_epoch = wf.model.epoch
    assert wf.record_again().ok
    assert wf.state is CaptureState.recording
    assert wf.model.answer == ""
    assert wf.model.ai_result is None

    assert wf.add_segment("late words", epoch=old_epoch) is False
    assert wf.add_segment("fresh words", epoch=wf.model.epoch) is True
    assert wf.model.answer == "fresh words"


def test_save_runs_continuation(store, genai):
    genai.queue('{"ratings": 7, "feedback": "ok"}')
    seen = []
    wf = _workflow(store, genai, on_saved=seen.append)
    _record(wf)
    asyncio.run(wf.stop_capture())
    asyncio.run(wf.save())
    assert seen and seen[0]["mockIdRef"] == "iv-1"


def test_result_after_close_is_discarded(store, genai):
    wf = _workflow(store, genai)

    class ClosingGenAI:
        async def send_message(self, prompt):
            wf.close()
            return await genai.send_message(prompt)

    genai.queue('{"ratings": 7, "feedback": "ok"}')
    wf.genai = ClosingGenAI()
    _record(wf)
    result = asyncio.run(wf.stop_capture())

    assert result.message == "discarded"
    assert wf.model.ai_result is None


def test_camera_failure_falls_back_to_placeholder(store, genai):
    wf = _workflow(store, genai)
    assert wf.toggle_camera() is True
    wf.camera_failed("Permission denied")
    view = render(wf.model)
    assert view["camera"] == {"on": False, "placeholder": True, "error": "Permission denied"}


def test_busy_flags_in_view(store, genai):
    wf = _workflow(store, genai)
    wf.start_capture()
    view = render(wf.model)
    assert view["is_recording"] is True
    assert view["is_ai_generating"] is False
    assert view["can_save"] is False


def test_clamp_rating():
    assert clamp_rating(7.6) == 8
    assert clamp_rating(-3) == 0
    assert clamp_rating(42) == 10


def test_non_finite_model_rating_saves_as_fallback(store, genai):
    genai.queue('{"ratings": NaN, "feedback": "ok"}')
    wf = _workflow(store, genai)
    _record(wf)
    asyncio.run(wf.stop_capture())
    assert wf.model.ai_result == {"ratings": 0, "feedback": "Unable to parse AI response."}

    assert asyncio.run(wf.save()).ok
    assert store.query("userAnswers", mockIdRef="iv-1")[0]["rating"] == 0


def test_save_refuses_non_finite_rating(store, genai):
    genai.queue('{"ratings": 7, "feedback": "ok"}')
    wf = _workflow(store, genai)
    _record(wf)
    asyncio.run(wf.stop_capture())
    wf.model.ai_result = {"ratings": float("nan"), "feedback": "ok"}

    result = asyncio.run(wf.save())
    assert not result.ok
    assert wf.state is CaptureState.scored
    assert store.snapshot("userAnswers") == []


def test_save_writes_off_the_event_loop_thread(store, genai):
    genai.queue('{"ratings": 7, "feedback": "ok"}')
    wf = _workflow(store, genai)
    _record(wf)
    asyncio.run(wf.stop_capture())

    threads = {}
    create = store.create

    def tracking_create(collection, data):
        threads["write"] = threading.get_ident()
        return create(collection, data)

    async def run():
        threads["loop"] = threading.get_ident()
        return await wf.save()

    store.create = tracking_create
    assert asyncio.run(run()).ok
    assert threads["write"] != threads["loop"]
