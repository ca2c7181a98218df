from .async_task import AsyncTask, run_async
