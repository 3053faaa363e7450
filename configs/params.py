import argparse
import logging

from core.dataset import KNOWLEDGE_DATA_USES, ALL
from core.warmup import WARMUP_TYPES, FULL

DATASET_TYPES = ['general', 'contact', 'knowledge', 'stream']
SELECTION_TYPES = ['random', 'roundrobin', 'random-roundrobin', 'limited', 'sequential', 'sequential-limited']


def parse_args(args=None):
    def str2bool(v):
        if v.lower() in ['yes', 'true', 't', 'y', '1']:
            return True
        elif v.lower() in ['no', 'false', 'f', 'n', '0']:
            return False
        else:
            raise argparse.ArgumentTypeError('Unsupported value encountered.')

    parser = argparse.ArgumentParser(description='Interactive recommendation simulation')

    # path
    parser.add_argument("--data", type=str, required=True, help='ratings, contacts, knowledge or stream file')
    parser.add_argument("--training", type=str, default=None, help='warm-up (user, item) pairs file')
    parser.add_argument("--algorithms", type=str, required=True, help='one algorithm per line: name key=value ...')
    parser.add_argument("--result_path", type=str, default='./results/', help='traces, seeds and summary')
    parser.add_argument("--separator", type=str, default='\t')

    # dataset
    parser.add_argument("--dataset_type", type=str, default='general', choices=DATASET_TYPES)
    parser.add_argument("--threshold", type=float, default=0.5, help='relevance threshold of a rating')
    parser.add_argument("--use_ratings", type=str2bool, default=True, help='False: every rating is 1.0')
    parser.add_argument("--directed", type=str2bool, default=True, help='contact: the graph is directed')
    parser.add_argument("--reciprocal", type=str2bool, default=True,
        help='contact: reciprocal edges can be recommended')
    parser.add_argument("--not_reciprocal", type=str2bool, default=False,
        help='contact: also reveal the reverse edge when the recommended one exists')
    parser.add_argument("--data_use", type=str, default=ALL, choices=KNOWLEDGE_DATA_USES,
        help='knowledge: subset of the ratings fed to the recommender')
    parser.add_argument("--warmup_type", type=str, default=FULL, choices=WARMUP_TYPES)

    # simulation
    parser.add_argument("--selection", type=str, default='random', choices=SELECTION_TYPES)
    parser.add_argument("--num_candidates", type=int, default=100, help='limited: size of the candidate pool')
    parser.add_argument("--num_iter", type=int, default=0, help='iterations per run, 0 for no limit')
    parser.add_argument("--perc_rel", type=float, default=0.0,
        help='stop when this fraction of the relevant ratings is found, 0 to disable')
    parser.add_argument("--cutoff", type=int, default=1, help='items recommended at each iteration')
    parser.add_argument("--metric_k", type=int, default=0, help='window of the last-k metrics, 0 to disable')
    parser.add_argument("--n_trials", type=int, default=1, help='number of runs per algorithm')
    parser.add_argument("--num_workers", type=int, default=1)
    parser.add_argument("--seed", type=int, default=2022, help='master seed')
    parser.add_argument("--resume", type=str2bool, default=False,
        help='reuse the stored seeds and continue the existing traces')
    parser.add_argument("--interval", type=int, default=10000, help='iterations between metric snapshots')
    parser.add_argument("--binary", type=str2bool, default=False, help='binary traces')
    parser.add_argument("--log_level", type=str, default='INFO')

    args = parser.parse_args(args)

    logging.info(args)
    return args


if __name__ == "__main__":
    args = parse_args()
