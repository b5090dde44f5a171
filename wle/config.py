from dataclasses import dataclass

@dataclass
class Config:
    TRAIN_URL = "https://d396qusza40orc.cloudfront.net/predmachlearn/pml-training.csv"
    TEST_URL  = "https://d396qusza40orc.cloudfront.net/predmachlearn/pml-testing.csv"
    DATA_DIR = "data"          # raw csv cache
    REPORT_DIR = "reports"
    HTTP_TIMEOUT = 60          # seconds, single attempt

    TARGET = "classe"
    CLASSES = ["A", "B", "C", "D", "E"]
    ID_COLUMN = "problem_id"   # only in the external test file

    RANDOM_STATE = 42

    # importance ranking on a stratified sample
    SAMPLE_PER_CLASS = 400
    TOP_K = 12
    RANKER_MIN_LEAF = 10
    RANKER_TREES = 500
    IMPORTANCE_REPEATS = 1     # permutations per tree

    TRAIN_FRACTION = 0.7

    # final forest (mtry chosen from earlier runs, not tuned)
    N_TREES = 500
    MTRY = 3
    N_JOBS = -1
