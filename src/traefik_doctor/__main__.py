from traefik_doctor.cli import main

main()
