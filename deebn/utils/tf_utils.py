"""Collection of Tensorflow specific utilities."""

import os
import tensorflow as tf

from ..core.config import Config


def init_summary_writer():
    """Create the tensorboard summary writer for a new training run.

    Each run gets its own directory logs_dir/run<N>, N being one more than
    the highest run identifier already present.

    Returns
    -------

    tf.summary.SummaryWriter : writer for the run directory
    """
    # Retrieve run identifier
    run_id = 0
    for e in os.listdir(Config().logs_dir):
        if e[:3] == 'run' and e[3:].isdigit():
            r = int(e[3:])
            if r > run_id:
                run_id = r
    run_id += 1
    run_dir = os.path.join(Config().logs_dir, 'run' + str(run_id))
    print('Tensorboard logs dir for this run is %s' % (run_dir))

    return tf.summary.create_file_writer(run_dir)


def run_summaries(summary_writer, epoch, **scalars):
    """Write scalar summaries for the given epoch.

    Parameters
    ----------

    summary_writer : tf.summary.SummaryWriter or None
        Writer returned by init_summary_writer. Nothing is written if None.

    epoch : int
        Current training epoch, used as summary step.

    scalars :
        name=value pairs to record.
    """
    if summary_writer is None:
        return
    with summary_writer.as_default():
        for name, value in scalars.items():
            tf.summary.scalar(name, float(value), step=epoch)
    summary_writer.flush()


def summary_writer_for(params):
    """Return a new summary writer if params['summary'] is set, else None."""
    return init_summary_writer() if params.get('summary') else None
