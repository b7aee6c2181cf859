"""
Interactive operator shell for the RAG backend.

Usage:
    ragconsole --base-url http://localhost:8080/api
    ragconsole --mode ask --log-level DEBUG

Lines are sent as questions; lines starting with "/" are commands (see
/help). Ctrl-C while waiting for an answer cancels that request.
"""

import argparse
import asyncio
import contextlib
import shlex
import signal

from ragconsole.core.config import get_settings
from ragconsole.core.errors import RAGClientError, RequestCancelledError
from ragconsole.core.logging_config import setup_logging
from ragconsole.core.telemetry import setup_telemetry
from ragconsole.main import Console, open_console
from ragconsole.models.document import DocumentFile, DocumentUploadRequest

HELP = """\
/mode ask|chat           switch between direct and retrieval-augmented answers
/config key=value ...    update RAG parameters (topK, threshold, maxTokens, ...)
/quality                 rate the last retrieval batch
/feedback positive|negative
/template [id]           list templates or select one
/prompt [text]           set (or clear) a custom override prompt
/history | /clear        load or clear the session history
/threads                 list threads
/thread new|open|archive|delete ARG
/upload PATH [TITLE]     upload a reference document
/docs                    list uploaded documents
/vector V1,V2,...        vector search with a precomputed embedding
/reset                   start a new session
/quit
"""


def _coerce(value: str):
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value


async def _send(console: Console, text: str, mode: str) -> None:
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, console.orchestrator.cancel)
    try:
        reply = await console.orchestrator.send_message(text, mode)
    except RequestCancelledError:
        print("(cancelled)")
        return
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)

    if reply is None:
        print("(ignored: a request is already running)")
    elif reply.error:
        print(f"! {reply.content}")
    else:
        print(reply.content)
        meta = reply.metadata
        if meta is not None:
            print(f"  [{meta.model}, {meta.tokens} tokens, {meta.processing_time_ms:.0f} ms]")


async def _thread_command(console: Console, args: list[str]) -> None:
    if len(args) < 2:
        print("usage: /thread new|open|archive|delete ARG")
        return
    action, arg = args[0], " ".join(args[1:])
    threads, session_id = console.threads, console.session_id
    if action == "new":
        thread = await threads.create(arg, session_id=session_id)
        print(f"created {thread.id}")
    elif action == "open":
        messages = await threads.activate(arg, session_id=session_id)
        console.orchestrator.replace_messages(messages)
        print(f"loaded {len(messages)} messages")
    elif action == "archive":
        await threads.archive(arg, session_id=session_id)
    elif action == "delete":
        await threads.delete(arg, session_id=session_id)
    else:
        print(f"unknown thread action: {action}")


async def _command(console: Console, line: str, state: dict) -> bool:
    """Run one slash command. Returns False when the shell should exit."""
    name, *args = shlex.split(line[1:]) or [""]
    orchestrator = console.orchestrator

    if name in ("quit", "exit"):
        return False
    if name == "help":
        print(HELP)
    elif name == "mode" and args and args[0] in ("ask", "chat"):
        state["mode"] = args[0]
    elif name == "config":
        updates = dict(arg.split("=", 1) for arg in args if "=" in arg)
        config = orchestrator.update_config(**{k: _coerce(v) for k, v in updates.items()})
        print(config.to_wire())
    elif name == "quality":
        print(orchestrator.evaluate_search_quality().to_wire())
    elif name == "feedback" and args and args[0] in ("positive", "negative"):
        print(orchestrator.apply_feedback(args[0]).to_wire())
    elif name == "template":
        if args:
            console.prompts.select_template(args[0])
        for template in console.prompts.list_templates():
            marker = "*" if template.id == console.prompts.selected_template_id else " "
            print(f"{marker} {template.id}: {template.name}")
    elif name == "prompt":
        text = " ".join(args)
        validation = console.prompts.validate_prompt(text) if text else None
        if validation is not None and not validation.valid:
            print("; ".join(validation.errors))
        else:
            console.prompts.custom_prompt = text
    elif name == "history":
        for message in await orchestrator.load_history():
            print(f"{message.role}: {message.content}")
    elif name == "clear":
        await orchestrator.clear_messages()
    elif name == "threads":
        for thread in await console.threads.list_for_session(console.session_id):
            print(f"{thread.id}  {thread.status.value:<8}  {thread.title}")
    elif name == "thread":
        await _thread_command(console, args)
    elif name == "upload" and args:
        file = DocumentFile.from_path(args[0])
        title = " ".join(args[1:]) or file.stem
        document = await console.documents.upload(
            file,
            DocumentUploadRequest(title=title),
            session_id=console.session_id,
            on_progress=lambda p: print(f"\r  {p:6.1%}", end="", flush=True),
        )
        print(f"\nuploaded {document.id} ({document.total_chunks} chunks)")
    elif name == "vector" and args:
        embedding = [float(value) for value in ",".join(args).split(",") if value.strip()]
        results = await console.retrieval.search_by_embedding(
            embedding, orchestrator.config, session_id=console.session_id
        )
        for result in results:
            print(f"{result.score:.3f}  {result.source}  {result.content[:80]}")
    elif name == "docs":
        for document in await console.documents.list_documents(console.session_id):
            print(f"{document.id}  {document.title}  ({document.total_chunks} chunks)")
    elif name == "reset":
        print(f"new session {orchestrator.reset_session()}")
    else:
        print(f"unknown command: /{name} (try /help)")
    return True


async def run_shell(console: Console, mode: str) -> None:
    state = {"mode": mode}
    print(f"session {console.session_id}; /help for commands")
    while True:
        try:
            line = (await asyncio.to_thread(input, f"{state['mode']}> ")).strip()
        except EOFError:
            break
        if not line:
            continue
        try:
            if line.startswith("/"):
                if not await _command(console, line, state):
                    break
            else:
                await _send(console, line, state["mode"])
        except (RAGClientError, ValueError, OSError) as exc:
            print(f"! {exc}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Interactive RAG backend console")
    parser.add_argument("--base-url", help="Backend base URL (overrides RAGCONSOLE_BACKEND_BASE_URL)")
    parser.add_argument("--mode", choices=["ask", "chat"], default="chat")
    parser.add_argument("--log-level", help="Log level (overrides RAGCONSOLE_LOG_LEVEL)")
    args = parser.parse_args(argv)

    settings = get_settings()
    if args.base_url:
        settings = settings.model_copy(update={"backend_base_url": args.base_url})
    setup_logging(args.log_level or settings.log_level)
    setup_telemetry(settings.service_name, settings.telemetry_console_export)

    async def _run() -> None:
        async with open_console(settings) as console:
            await run_shell(console, args.mode)

    asyncio.run(_run())


if __name__ == "__main__":
    main()
