from filevault.main import run

run()
