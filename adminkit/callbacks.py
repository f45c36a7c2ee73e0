"""
Resource lifecycle callbacks

Interceptors are registered against a stage (build, create, update, save, destroy).
An interceptor is a callable taking the subject (the record) and the next link of the chain:

    def audit(record, next_link):
        log.info(f"saving {record}")
        next_link()

Interceptors run in registration order, the innermost link runs the stage's core action.
An interceptor that doesn't call `next_link` vetoes the core action (and the interceptors
registered after it) without raising.

create and update nest the save chain inside their own chain, so save interceptors
run for every persisting action.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple
import adminkit

BUILD = "build"
CREATE = "create"
UPDATE = "update"
SAVE = "save"
DESTROY = "destroy"

STAGES = (BUILD, CREATE, UPDATE, SAVE, DESTROY)

Interceptor = Callable[[Any, Callable[[], None]], None]


class CallbackRegistry:
    """
    Ordered interceptor chains, one per stage.
    The registry is frozen when the resource configuration is created, registering
    callbacks afterwards raises a RuntimeError
    """

    def __init__(self, stages: Tuple[str, ...] = STAGES) -> None:
        self._chains: Dict[str, List[Interceptor]] = {stage: [] for stage in stages}
        self._frozen = False

    @property
    def stages(self) -> Tuple[str, ...]:
        return tuple(self._chains)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "CallbackRegistry":
        self._frozen = True
        return self

    def _chain(self, stage: str) -> List[Interceptor]:
        try:
            return self._chains[stage]
        except KeyError:
            raise ValueError(f'Unknown callback stage "{stage}", valid stages: {", ".join(self._chains)}')

    def register(self, stage: str, interceptor: Interceptor) -> Interceptor:
        """
        :param stage: lifecycle stage
        :param interceptor: callable(subject, next_link)
        :return: the interceptor, so register can be used as a decorator through `on`
        """
        chain = self._chain(stage)
        if self._frozen:
            raise RuntimeError(f'Callback registry is frozen, can\'t register "{stage}" callback {interceptor}')
        if not callable(interceptor):
            raise TypeError(f"Callback {interceptor!r} is not callable")
        chain.append(interceptor)
        return interceptor

    def on(self, stage: str) -> Callable[[Interceptor], Interceptor]:
        """
        decorator form of `register`
        """

        def decorator(interceptor: Interceptor) -> Interceptor:
            return self.register(stage, interceptor)

        return decorator

    def before(self, stage: str, hook: Callable[[Any], Any]) -> Interceptor:
        """
        Register a hook that runs before the rest of the chain
        :param hook: callable(subject)
        """

        def before_interceptor(subject, next_link):
            hook(subject)
            next_link()

        before_interceptor.__name__ = f"before_{stage}_{getattr(hook, '__name__', 'hook')}"
        return self.register(stage, before_interceptor)

    def after(self, stage: str, hook: Callable[[Any], Any]) -> Interceptor:
        """
        Register a hook that runs after the rest of the chain (ie. after the core action)
        The hook doesn't run when the chain was short circuited by a later interceptor
        """

        def after_interceptor(subject, next_link):
            if next_link() is not _HALTED:
                hook(subject)

        after_interceptor.__name__ = f"after_{stage}_{getattr(hook, '__name__', 'hook')}"
        return self.register(stage, after_interceptor)

    def callbacks(self, stage: str) -> Tuple[Interceptor, ...]:
        return tuple(self._chain(stage))

    def run(self, stage: str, subject: Any, core_action: Optional[Callable[[], Any]] = None) -> Any:
        """
        Run the `stage` chain around `core_action`
        :param stage: lifecycle stage
        :param subject: the record passed to every interceptor
        :param core_action: callable without arguments, eg. persisting the record
        :return: the result of core_action, None if an interceptor didn't call the next link
        """
        chain = self._chain(stage)
        outcome = {}

        def link(index: int):
            if index == len(chain):
                outcome["result"] = core_action() if core_action is not None else None
                return None
            interceptor = chain[index]
            called = []

            def next_link():
                called.append(True)
                link(index + 1)
                return None if "result" in outcome else _HALTED

            interceptor(subject, next_link)
            if not called:
                adminkit.log.debug(f"{stage} callback {getattr(interceptor, '__name__', interceptor)} halted the chain for {subject}")
            return None

        link(0)
        return outcome.get("result")

    def __repr__(self) -> str:
        counts = ", ".join(f"{stage}={len(chain)}" for stage, chain in self._chains.items())
        return f"<CallbackRegistry {counts}{' frozen' if self._frozen else ''}>"


class _Halted:
    """marker returned by next_link when the core action didn't run"""

    def __repr__(self) -> str:
        return "<halted>"


_HALTED = _Halted()
