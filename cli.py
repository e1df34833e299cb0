import argparse
import json
import random
from pathlib import Path

import requests

from quiz_api.logging_setup import setup_console_logging
from quiz_engine import (
    HintUnavailableError,
    InvalidAnswerError,
    JsonFileSnapshotStore,
    MalformedTestError,
    MultipleChoiceQuestion,
    OpenTextQuestion,
    PersistenceAdapter,
    PuzzleQuestion,
    QuizSession,
    RealClock,
    ResultSubmitter,
    SessionMode,
    SessionPhase,
    UserPreferences,
    load_test_definition,
)
from quiz_engine.evaluator import build_review
from quiz_engine.results import ResultSink

setup_console_logging()

HELP = (
    "Commands: <enter> next, :p previous, :g N go to question N, :s skip, "
    ":c check, :a show answer, :h hint, :f finish, :q quit (progress is kept)"
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Take a test in the terminal")
    parser.add_argument("file", type=Path, help="Path to a test.json file")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in SessionMode],
        default=SessionMode.STANDARD.value,
        help="Session mode",
    )
    parser.add_argument(
        "--progress-dir",
        type=Path,
        default=Path("data/progress"),
        help="Directory for resumable progress snapshots",
    )
    parser.add_argument("--results-url", type=str, default=None, help="Results endpoint URL")
    parser.add_argument(
        "--results-file",
        type=Path,
        default=Path("data/results.jsonl"),
        help="File to append results to when no URL is given",
    )
    parser.add_argument("--email", type=str, default="unknown", help="User email for the result")
    parser.add_argument("--seed", type=int, default=None, help="Shuffle seed")
    parser.add_argument("--timeout", type=float, default=10.0, help="HTTP timeout in seconds")
    return parser.parse_args()


def make_sink(args: argparse.Namespace) -> ResultSink:
    if args.results_url:
        def post(payload: dict[str, object]) -> None:
            response = requests.post(args.results_url, json=payload, timeout=args.timeout)
            response.raise_for_status()

        return post

    def append(payload: dict[str, object]) -> None:
        args.results_file.parent.mkdir(parents=True, exist_ok=True)
        with args.results_file.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=False) + "\n")

    return append


def render(session: QuizSession) -> None:
    view = session.view()
    question = session.current_question
    header = f"\n[{view.current_index + 1}/{view.total}]"
    if view.time_remaining is not None:
        header += f" {view.time_remaining}s left ({view.timer_scope})"
    print(header)
    print(question.text)
    if isinstance(question, MultipleChoiceQuestion):
        for number, option in enumerate(question.options, start=1):
            marker = "*" if view.answer == number - 1 else " "
            print(f" {marker}{number}. {option}")
    elif isinstance(question, PuzzleQuestion):
        print("Words: " + " | ".join(question.words))
        if view.answer:
            print("Current: " + " ".join(view.answer))
    elif isinstance(question, OpenTextQuestion) and view.answer:
        print(f"Current: {view.answer}")
    if view.hint:
        print(f"Hint: {view.hint}")
    if view.revealed:
        print(f"Answer: {question.correct_answer}")


def parse_answer(session: QuizSession, line: str) -> object:
    question = session.current_question
    if isinstance(question, MultipleChoiceQuestion):
        if not line.isdigit():
            raise InvalidAnswerError("type an option number")
        return int(line) - 1
    if isinstance(question, PuzzleQuestion):
        return line.split()
    return line


def handle(session: QuizSession, line: str, index: int) -> bool:
    """Apply one command aimed at question `index`. Returns False when the user wants to quit."""
    if line == "":
        if not session.next_question(index):
            print("Answer the question first.")
    elif line == ":p":
        session.previous_question(index)
    elif line.startswith(":g"):
        target = line[2:].strip()
        if not target.isdigit() or not session.go_to(int(target) - 1, index):
            print("Cannot go there.")
    elif line == ":s":
        if not session.skip(index):
            print("Skipping is only available in practice mode.")
    elif line == ":c":
        feedback = session.check_answer(index)
        if feedback is None:
            print("Nothing to check.")
        else:
            print("Correct!" if feedback.is_correct else "Incorrect.")
    elif line == ":a":
        if session.show_answer(index) is None:
            print("Show answer is only available in practice mode.")
    elif line == ":h":
        try:
            session.reveal_hint()
        except HintUnavailableError as exc:
            print(f"No hint: {exc}")
    elif line == ":f":
        session.finish()
    elif line == ":q":
        return False
    else:
        try:
            session.select_answer(parse_answer(session, line), index)
        except InvalidAnswerError as exc:
            print(f"Invalid answer: {exc}")
    return True


def count_local_attempts(path: Path, test_id: str, user_email: str) -> int:
    """Finished attempts already appended to a JSON-lines results file."""
    if not path.exists():
        return 0
    count = 0
    with path.open(encoding="utf-8") as handle:
        for line in handle:
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(record, dict) and record.get("testId") == test_id and record.get("userEmail") == user_email:
                count += 1
    return count


def catch_up(session: QuizSession, clock: RealClock, last_tick_at: float) -> float:
    """Deliver the ticks owed for whole seconds spent waiting on input."""
    elapsed = int(clock.now() - last_tick_at)
    for _ in range(elapsed):
        if session.phase is not SessionPhase.ACTIVE:
            break
        session.tick()
    session.poll()
    return last_tick_at + elapsed


def main() -> None:
    args = parse_args()
    mode = SessionMode(args.mode)
    try:
        payload = json.loads(args.file.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise MalformedTestError("expected a JSON object at the top level")
        payload.setdefault("id", args.file.parent.name)
        test = load_test_definition(payload, mode)
    except (OSError, json.JSONDecodeError, MalformedTestError) as exc:
        raise SystemExit(f"Cannot load {args.file}: {exc}")

    clock = RealClock()
    session = QuizSession(
        test,
        mode,
        persistence=PersistenceAdapter(JsonFileSnapshotStore(args.progress_dir)),
        submitter=ResultSubmitter(make_sink(args), background=False),
        clock=clock,
        preferences=UserPreferences(),
        rng=random.Random(args.seed) if args.seed is not None else None,
        user_email=args.email,
        prior_attempts=0 if args.results_url else count_local_attempts(args.results_file, test.id, args.email),
        grace_period_s=0,
    )
    if session.start() is SessionPhase.AWAITING_RESUME:
        choice = input("Saved progress found. Resume? [Y/n] ").strip().lower()
        if choice in ("", "y", "yes"):
            session.resume()
        else:
            session.restart()

    print(f"{test.title} ({mode.value})")
    print(HELP)
    last_tick_at = clock.now()
    while session.phase is SessionPhase.ACTIVE:
        shown = session.current_index
        render(session)
        line = input("> ").strip()
        last_tick_at = catch_up(session, clock, last_tick_at)
        if session.phase is not SessionPhase.ACTIVE:
            break
        if not handle(session, line, shown):
            print(f"Progress saved to {args.progress_dir}")
            return

    result = session.result
    if result is None:
        return
    print(f"\nScore: {result.score}/{result.total} in {result.duration_seconds}s")
    if not session.show_details:
        print("Answers are hidden for this attempt.")
        return
    for item in build_review(list(result.questions), list(result.answers)):
        mark = "+" if item.is_correct else "-"
        line = f" {mark} {item.index + 1}. {item.text}"
        if item.correct_answer is not None and not item.is_correct:
            line += f" (correct: {item.correct_answer})"
        print(line)


if __name__ == "__main__":
    main()
