import asyncio
import sys

from quill.quill_runtime import ScriptRunner
from quill.quill_printer import Printer
from quill.quill_file import run_file

# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)

async def run_script_file(file_path: str):
    """Run a Quill script file non-interactively and exit with appropriate status."""
    runner = ScriptRunner()
    printer = Printer()
    result = await run_file(runner, file_path)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(2 if result.error_kind == 'system' else 1)
    if result.variables:
        print(printer.pformat(result.variables))

async def main():
    """Run a script file when provided, otherwise start the interactive REPL."""
    if len(sys.argv) > 1:
        arg = sys.argv[1]
        if not arg.startswith("-"):
            await run_script_file(arg)
            return

    print("Quill REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    # Bindings persist across lines through the runner's root scope
    runner = ScriptRunner()
    printer = Printer()

    while True:
        try:
            raw = await ainput(">> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break

            result = await runner.handle_script(line)

            if result.status == 'error':
                print(result.format_error(), file=sys.stderr)
                continue

            if result.value is not None:
                print(printer.pformat(result.value))

        except EOFError:
            print("\nExiting.")
            break

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")
