import nox

nox.options.sessions = ["tests"]

PYTHONS = ["3.11", "3.12", "3.13"]

# session name -> pytest arguments
SUITES = {
    "tests": [],
    "domain": ["-m", "domain"],
    "handlers": ["-m", "application"],
    "api": ["-m", "integration"],
    "scenarios": ["-m", "bdd"],
    "quick": ["-m", "not slow"],
}


def _run_suite(session: nox.Session, args: list[str]) -> None:
    session.install("-e", ".[test]")
    session.run("pytest", *args, *session.posargs)


for _name, _args in SUITES.items():

    @nox.session(name=_name, python=PYTHONS)
    def _suite(session: nox.Session, _args=_args) -> None:
        _run_suite(session, _args)
