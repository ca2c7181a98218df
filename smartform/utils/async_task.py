import asyncio
import logging
from typing import Callable, Any, Optional, Tuple, Dict

logger = logging.getLogger(__name__)

class AsyncTask:
    """
    A utility class for running form work that may or may not suspend.
    With a running event loop the work becomes a task; without one it runs
    to completion before `run` returns.
    """

    @staticmethod
    def run(
            coroutine_func: Callable,
            args: Tuple = (),
            kwargs: Dict = None,
            on_success: Optional[Callable] = None,
            on_error: Optional[Callable] = None,
            on_complete: Optional[Callable] = None,
    ) -> Optional[asyncio.Task]:
        """
        Run an asynchronous function with callbacks for success, error, and completion.

        Args:
            coroutine_func: The async function to run
            args: Positional arguments to pass to the function
            kwargs: Keyword arguments to pass to the function
            on_success: Callback function that receives the result when successful
            on_error: Callback function that receives the exception when failed
            on_complete: Callback function called regardless of success/failure

        Returns:
            The created asyncio.Task, or None when no loop was running and the
            work already completed synchronously.
        """
        if kwargs is None:
            kwargs = {}

        async def _wrapped_coroutine():
            try:
                result = await coroutine_func(*args, **kwargs)

                if on_success is not None:
                    on_success(result)

                return result
            except Exception as e:
                if on_error is None:
                    raise
                on_error(e)
                return None
            finally:
                if on_complete is not None:
                    on_complete()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            logger.debug("No running event loop; running %s synchronously", getattr(coroutine_func, "__name__", coroutine_func))
            asyncio.run(_wrapped_coroutine())
            return None

        return loop.create_task(_wrapped_coroutine())

# Create a simpler alias for the run method
run_async = AsyncTask.run
